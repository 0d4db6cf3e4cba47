
__version__ = "0.1.0"
__banner__ = \
"""
# minipac %s 
# Privilege Attribute Certificate parsing and signature validation
""" % __version__
