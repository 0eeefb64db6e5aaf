# whats_poopin/api/auth/__init__.py
