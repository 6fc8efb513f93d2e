"""mediaopt - supervised media optimization jobs.

Runs ffmpeg against a single input file, tracks its progress, enforces
liveness and publishes the result atomically.
"""

__version__ = "0.1.0"
