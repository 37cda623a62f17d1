"""Configuration, database, logging and error taxonomy."""
