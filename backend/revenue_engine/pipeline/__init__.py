"""
Pipeline Module

Lead and policy lifecycles (transitions state machines) and the
LeadPipeline service that applies them.
"""
