"""
Catalog pricing.

SKU construction, the catalog index, resolution with typed errors,
catalog loading and the priced quote summary.
"""
