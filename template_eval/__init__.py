"""
Template-driven field extraction for web pages.

This package applies a declarative per-site template (a URL pattern plus
named XPath rules) to a list of URLs, with an optional on-disk page cache,
and emits one tab-separated row per matching URL.

Run ``template-eval --help`` for usage. The template file format is described
in template_eval.compiler and the page cache layout in template_eval.cache.
"""

__version__ = "0.1.0"
