"""chunkhook — store large files as chunked webhook blobs with a local SQLite index."""
