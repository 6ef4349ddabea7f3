"""FastAPI application for the account management platform."""
