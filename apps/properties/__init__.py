"""Properties app package.

Holds the property catalog: nightly rates, cleaning fee, monthly discount
and stay limits, plus the read-only API and the price quote endpoint.
"""
