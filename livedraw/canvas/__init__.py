"""Drawing layer and image helpers."""
from .draw_layer import BrushSettings, DrawLayer, Stroke, capture_composite

__all__ = ["BrushSettings", "DrawLayer", "Stroke", "capture_composite"]
