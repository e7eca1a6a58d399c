"""Reference server for the upload / download API."""
