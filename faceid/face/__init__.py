"""Face matching building blocks (descriptor/gallery/matcher/detector).

Everything here is stateless apart from the read-only gallery, so the
recognition session can call it without locking.
"""
