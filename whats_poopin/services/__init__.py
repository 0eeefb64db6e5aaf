# whats_poopin/services/__init__.py
