# whats_poopin/api/meta/__init__.py
