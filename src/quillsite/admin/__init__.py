"""Admin surface: content listings, edit pages, and form saves."""
