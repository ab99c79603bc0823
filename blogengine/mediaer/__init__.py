"""Image lookup for article drafts."""

from .unsplash import ImageResult, UnsplashImageSearch

__all__ = ['ImageResult', 'UnsplashImageSearch']
