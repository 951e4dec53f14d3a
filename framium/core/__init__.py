"""
Core modules for Framium.

This package contains the plan catalog, pricing, token estimation,
quota admission and the chat orchestrator.
"""
