"""Client side: HTTP wrapper, upload and download flows, notifications."""
