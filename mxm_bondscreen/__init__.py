"""
mxm-bondscreen: aggregate, price and rank exchange-traded bonds.

Pipeline
--------
    listing (moex) ─┐
    statistics (finam) ─┤→ merge → yields → filters → details (rusbonds) → rank → report
    market tables (smartlab) ─┘

Entry points live in :mod:`mxm_bondscreen.screen.run` (library) and
:mod:`mxm_bondscreen.cli` (command line).
"""

__version__ = "0.1.0"
