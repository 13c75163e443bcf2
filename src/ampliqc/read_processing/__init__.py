"""Streaming read processing pipeline and runners.

Copyright © 2025 Pixelgen Technologies AB.
"""
