"""
Staking auto-compounder.

Measures a delegator's bonded stake, the network inflation rate and validator
commissions, computes the compounding interval that maximizes one-year growth
net of transaction fees, and claims + re-bonds rewards when that interval has
elapsed.
"""

__version__ = "0.1.0"
