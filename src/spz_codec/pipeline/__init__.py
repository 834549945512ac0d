"""Conversion pipeline - routes files between the PLY and spz codecs."""

from .config import ConvertConfig
from .router import FileRouter
from .orchestrator import Converter, load_gaussians, save_gaussians

__all__ = ['ConvertConfig', 'FileRouter', 'Converter', 'load_gaussians', 'save_gaussians']
