"""Syntax facility: turns JS/TS source into documentable declarations."""

from .models import DeclarationNode, FileOutline
from .protocol import DeclarationSource
from .parsers.ts_parser import TSParser

__all__ = ["DeclarationNode", "FileOutline", "DeclarationSource", "TSParser"]
