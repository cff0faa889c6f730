"""Focus Fade: watches which app has your attention and reports on distractions."""

__version__ = "0.1.0"
