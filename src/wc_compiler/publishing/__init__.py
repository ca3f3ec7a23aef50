"""
Publishing layer - output documents, poster manifest, and the atomic writer.
"""
