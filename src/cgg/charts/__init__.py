"""Series selection, partitioning and rendering."""
