"""Models package."""

from .artist_analysis import ArtistAnalysis
