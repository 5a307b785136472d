"""Infrastructure components for the mock interview system.

This module contains low-level technical components: external service
clients, audio devices, realtime media and persistence. Submodules are
imported directly so that heavy native dependencies load only when used.
"""
