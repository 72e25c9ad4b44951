"""Services Layer — merge bookkeeping, integrations, webhooks, AI drafting.

Invariants:
    - Services take an AsyncSession (and collaborators) in __init__; routes stay thin
    - Services that own a unit of work commit it; helpers that stage changes say so

Design Decisions:
    - One service per concern for locality
"""
