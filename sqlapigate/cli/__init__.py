"""CLI module for sqlapigate."""
