"""Console scripts for ampliqc.

Copyright © 2025 Pixelgen Technologies AB.
"""
