"""
Core modules for imgblend.

This package contains the core logic for:
- Configuration management
- Reference image loading and encoding
- The blend instruction and aspect ratios
- Image generation (client and providers)
- The blend session state used by the UI
"""
