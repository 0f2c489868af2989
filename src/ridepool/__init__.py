"""Ride pooling marketplace backend: route polylines, route matching and offer search."""
