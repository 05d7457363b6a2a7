"""
docpipe - Services Package

Operations and the adapters over pikepdf, pypdfium2 and rapidocr.
"""
