# whats_poopin/api/users/__init__.py
