"""
preoomkiller
- Evicts Kubernetes pods gracefully before the kernel OOM-kills them.
- Pods opt in with a label and declare a memory threshold in an annotation.
"""

__version__ = "0.4.0"
