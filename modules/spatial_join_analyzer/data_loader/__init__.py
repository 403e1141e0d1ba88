"""Dataset loading for the spatial join analyzer."""

from .dataset_loader import DatasetLoader, LoadedDatasets

__all__ = ['DatasetLoader', 'LoadedDatasets']
