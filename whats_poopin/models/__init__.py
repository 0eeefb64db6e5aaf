# whats_poopin/models/__init__.py
