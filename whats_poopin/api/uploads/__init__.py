# whats_poopin/api/uploads/__init__.py
