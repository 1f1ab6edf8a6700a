"""
Document readers.

The importer only needs a forward-only cursor; :mod:`xml_cursor` provides
the default one on top of the standard library's ``iterparse``.
"""

from .xml_cursor import CursorError, XmlCursor, open_xml_cursor

__all__ = ["CursorError", "XmlCursor", "open_xml_cursor"]
