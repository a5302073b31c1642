"""
Shared helpers for the test suite.
"""

from .expand_utils import deep_containers, expand_file, expand_text, names, texts
from .file_utils import write, write_template, write_tree

__all__ = ["write", "write_template", "write_tree", "deep_containers", "expand_text", "expand_file", "names", "texts"]
