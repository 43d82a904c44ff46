"""
Newick and Split-Newick parsing.

This module provides the state-machine Newick parser and the Split-Newick
reader and writer built on top of it.
"""

from .newick_parser import (
    ParsedNewick,
    parse_newick,
    flush_character_buffer,
    flush_length_buffer,
    flush_buffer,
)
from .split_newick import parse_split_newick, write_split_newick

__all__ = [
    "ParsedNewick",
    "parse_newick",
    "flush_character_buffer",
    "flush_length_buffer",
    "flush_buffer",
    "parse_split_newick",
    "write_split_newick",
]
