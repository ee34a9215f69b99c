"""
Signing core: address codec, key custody, canonical encoding and signatures.

Import submodules directly, e.g. ``core.signing.encoder``.
"""
