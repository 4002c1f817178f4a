"""Infrastructure layer: logging and object storage."""
