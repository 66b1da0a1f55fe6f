"""Bundled file-transform tools for the pipeline stages."""

from .base import Tool, ToolSet
from .concat import concat, write_sourcemaps
from .docs import DocBlock, extract_doc_blocks, render_docs
from .images import optimize_images
from .markup import collapse_whitespace, compile_templates, minify_markup
from .scripts import minify_scripts
from .styles import compile_styles, minify_styles

__all__ = [
    # Contract
    "Tool",
    "ToolSet",
    # Transforms
    "collapse_whitespace",
    "compile_styles",
    "compile_templates",
    "concat",
    "minify_markup",
    "minify_scripts",
    "minify_styles",
    "optimize_images",
    "write_sourcemaps",
    # Documents
    "DocBlock",
    "extract_doc_blocks",
    "render_docs",
]
