"""
Subscriber Later Binding - Siemens

Companion wiring for SIPROTEC 5 ExtRefs: when one ExtRef is subscribed or
unsubscribed, the matching quality attribute and sampled-value phases
follow it.
"""

__version__ = "0.1.0"
