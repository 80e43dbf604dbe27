"""Flask JSON API and simulation store for the mortgage calculator."""
