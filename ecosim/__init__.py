"""
Ecosim Micro-Ecosystem Simulation

A headless simulation engine where drifting building blocks assemble into
organisms that breathe, hunt, reproduce, and die inside a diffusing gas field.

Architecture: the engine owns world state. Renderers and UIs are consumers.
"""

__version__ = "0.1.0"
