"""Exports of ampliqc results for external reporting tools.

Copyright © 2025 Pixelgen Technologies AB.
"""
