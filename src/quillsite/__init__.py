"""quillsite: static-site builder with a schema-less content admin."""

__version__ = "0.1.0"
