"""
countryrisk package
===================

Calibration helpers for country-level catastrophe risk results.

- Damage function calibration for one country/hazard pair is in `countryrisk/calibrate.py`.
- The economic loss adjustment (country damage factor) is in `countryrisk/economic_loss.py`.
- The indicator table loader is in `countryrisk/loader.py`.
- The interactive CLI entry point is in `countryrisk/cli.py`.
"""

__version__ = '0.1.0'
