"""Protocol and session layer for the developer console."""
