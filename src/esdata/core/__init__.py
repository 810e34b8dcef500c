"""Core layer — Request/response conversion, exception translation and the template."""
