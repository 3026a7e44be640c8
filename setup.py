"""Install the identity service."""

from setuptools import setup, find_packages

setup(
    name='identity-service',
    version='0.3.0',
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        "flask",
        "werkzeug",
        "flask-sqlalchemy",
        "sqlalchemy",
        "redis>=4.3",
        "requests",
        "celery",
        "pyjwt",
        "retry",
        "python-json-logger",
        "kombu",
        "fakeredis",
    ],
    extras_require={
        'test': [
            "pytest",
            "mimesis",
        ],
    },
    zip_safe=False
)
