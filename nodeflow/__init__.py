"""
Nodeflow - A lightweight, async-first engine for typed workflow graphs.

Compose triggers, actions and logic gates into a directed graph and run it:
each node performs a unit of work and hands its output to its successors.
"""

__version__ = "1.0.0"
