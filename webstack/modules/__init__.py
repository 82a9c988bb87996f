"""
webstack Modules - Black Box Architecture

Each module is a self-contained black box with:
- Clear interface (public API)
- Hidden implementation details
- Single responsibility

The lifecycle manager composes them; modules never import each other's
internals.
"""
