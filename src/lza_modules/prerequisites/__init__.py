"""Prerequisites for deploying an AWS Control Tower landing zone.

Run only when no landing zone exists yet: organization validation, Control
Tower service roles, shared accounts and the landing zone KMS key.
"""
