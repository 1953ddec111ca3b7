"""Infrastructure adapters for the book catalog."""
