"""Configure Sphinx."""

import os
import sys

# Add the project root to the path so Sphinx can find the package
sys.path.insert(0, os.path.abspath(".."))

project = "lumo2snirf"
release = "0.1.0"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    "myst_parser",
]

# numpy-style docstrings
napoleon_google_docstring = False
napoleon_numpy_docstring = True
napoleon_include_init_with_doc = True
napoleon_use_param = True
napoleon_use_rtype = True

html_theme = "sphinx_rtd_theme"
exclude_patterns = ["__pycache__", "_build"]
source_suffix = {
    ".rst": "restructuredtext",
    ".md": "markdown",
}
