"""Command-line front end for the developer console client."""
