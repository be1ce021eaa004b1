"""
Services package for Robo Face Emotion Engine.

This package contains process-wide service state shared between the HTTP
routes and the detection loop:
- Emotion request tracker: when the state was last polled (idle throttling)
"""
