"""CLI module for varbridge."""
