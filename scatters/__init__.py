"""
scatters: turn CSV, Parquet, JSON, Excel and audio files into interactive
HTML scatter plots.
"""

__version__ = "0.1.0"
