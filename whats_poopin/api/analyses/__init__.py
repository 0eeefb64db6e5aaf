# whats_poopin/api/analyses/__init__.py
