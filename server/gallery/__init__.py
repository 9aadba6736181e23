"""
Backend package for the recipe and picture gallery.

Mirrors the Recipes and Pictures folders of a Google Drive account into an
in-memory catalog, keeps a local thumbnail cache of every image, and serves
both through a paginated FastAPI application.
"""
