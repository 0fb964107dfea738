"""Inference graph loading and handles."""

from inference.graph_model import GraphModel
from inference.model_loader import ModelHandles, ModelLoader, load_models

__all__ = [
    'GraphModel',
    'ModelHandles',
    'ModelLoader',
    'load_models',
]
