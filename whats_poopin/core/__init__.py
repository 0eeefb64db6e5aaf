# whats_poopin/core/__init__.py
