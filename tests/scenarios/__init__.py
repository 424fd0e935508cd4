"""End-to-end scenario tests for the SAML replay guard.

Each scenario drives the guard against every store backend and checks the
decision together with the resulting store contents.
"""
