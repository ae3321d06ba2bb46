"""
digitnet package
~~~~~~~~~~~~~~~~

Fully-connected feedforward digit classifier with hand-rolled forward
propagation and backpropagation. Contains the propagation engine, the
configuration and sample loaders, the training driver, and the API server.
"""

__version__ = "1.0.0"
