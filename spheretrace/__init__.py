"""Pure-Python image encoders: PNG, BMP, TGA, Radiance HDR and baseline JPEG."""

__version__ = "0.1.0"

__all__ = ["deflate", "jpeg", "png", "writers"]