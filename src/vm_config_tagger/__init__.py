"""
vm-config-tagger: tags a VM with its next CPU or memory tier when a vCenter
usage alarm turns red.
"""

__version__ = "0.1.0"
