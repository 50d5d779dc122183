"""SQL storage backends and schema migrations."""
