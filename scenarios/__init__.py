# scenarios/__init__.py
