"""Infrastructure layer: storage backends, the key-value store, broadcast sync and sessions."""
