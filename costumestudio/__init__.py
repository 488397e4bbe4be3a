"""CostumeStudio - AI costume design with a personal gallery and a votable community board."""

__author__ = 'Jake Meador <jameador13@gmail.com>'
__version__ = '0.1.0'

from .collection import CollectionManager
from .ids import IdAllocator
from .session import DesignSession
from .store import JsonFileStore, MemoryStore
from . import config

__all__ = [
    'CollectionManager',
    'IdAllocator',
    'DesignSession',
    'JsonFileStore',
    'MemoryStore',
    'config',
]
