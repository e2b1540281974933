"""
Allow running fitsview as a module: python -m fitsview

Author: Olivier Vitrac, PhD, HDR
        Generative Simulation Initiative
        olivier.vitrac@gmail.com
"""

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
