"""
Greenlit Pipeline Module

Stage gating, context aggregation, generation and progress reporting for
the pre-production pipeline.
"""
