"""External accounting domain.

This module mirrors data from external accounting systems:
- QuickBooks Online OAuth and REST reads
- Normalization of provider payloads into web transactions
- Idempotent persistence of raw and normalized rows and sync watermarks
"""
