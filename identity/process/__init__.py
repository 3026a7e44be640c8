"""Multi-step operations that span more than one service."""
