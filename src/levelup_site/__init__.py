"""
LevelUp Construction site package.

Provides:
- A FastAPI app rendering the marketing page
- An async Imagen client used to generate the logo and illustration on page load
"""
