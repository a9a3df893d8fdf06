"""
Hedge fund market-neutrality analysis package.

This package contains reusable utilities for:
- Downloading monthly returns for hedge funds, the equity index and crypto
  assets, the risk-free rate and inflation (FRED), and Fama–French factors
- Cleaning and aligning them into one month-end indexed panel
- Summarising returns and running CAPM / multi-factor regressions that test
  whether a fund's market beta is zero

All code is written in pure Python (NumPy/Pandas/SciPy/statsmodels).
"""
