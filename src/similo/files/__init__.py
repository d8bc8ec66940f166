"""Content access module - eligibility rules and file reading."""

from similo.files.reader import FileContent, FileReader, FileStat

__all__ = ["FileContent", "FileReader", "FileStat"]
