# whats_poopin/api/__init__.py
