"""Device drivers for story sessions.

This package provides the hardware-facing collaborators of the narrative
core:

- Background music playback via pygame
- Haptic feedback via a gpiozero-driven vibration motor
"""
