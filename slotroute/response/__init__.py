"""
slotroute.response
------------------

Callbacks used to shape raw RESP responses into python types
"""
