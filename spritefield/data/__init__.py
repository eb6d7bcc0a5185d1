"""Static configuration: named palettes and the icon asset registry."""
