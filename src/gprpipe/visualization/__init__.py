"""Visualization module for radargram rendering."""

from gprpipe.visualization.renderer import RadargramRenderer

__all__ = ["RadargramRenderer"]
