"""ChangeTour CLI."""
