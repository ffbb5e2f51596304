"""Branching-narrative core.

This package drives an interactive story, including:

- Story graph loading and node lookup
- Text reveal gating of choice visibility
- Hold-to-confirm choice commitment
- Navigation state and transition counting
- Rating prompt scheduling and player settings
- An HTTP surface for renderers
"""
