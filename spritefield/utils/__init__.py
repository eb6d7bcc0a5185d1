"""Raster helpers, shape atlas, icon loading and seed files."""
