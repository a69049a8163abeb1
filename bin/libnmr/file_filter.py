#!/usr/bin/env python3

import os
from tempfile import NamedTemporaryFile
from abc import ABC, abstractmethod

class FileFilter(ABC):
	"""
	An abstract class that filters the content of a file. It works by passing an
	input and output stream to an abstract function. If the abstract function
	returns true, the output of the output stream is then copied back into the
	original file so its ownership and mode are kept.
	"""
	def __init__(self, filename):
		self.filename = filename

	@abstractmethod
	def filter_stream(self, in_stream, out_stream):
		pass

	def run(self):
		dirpath = os.path.dirname(self.filename)
		change = False
		if not os.path.exists(self.filename):
			with open(self.filename, 'w+') as f:
				pass
		outname = False
		try:
			# bytes that are not valid text pass through unchanged
			with open(self.filename, errors='surrogateescape') as source, \
					NamedTemporaryFile('w', dir=dirpath, delete=False, errors='surrogateescape') as outfile:
				outname = outfile.name
				change = self.filter_stream(source, outfile)
			if change != False:
				with open(outname, errors='surrogateescape') as inflow, \
						open(self.filename, 'w+', errors='surrogateescape') as outflow:
					for line in inflow:
						outflow.write(line)
		finally:
			if outname != False:
				os.remove(outname)
		return change != False

class FilterIfExists(FileFilter):
	"""A FileFilter that skips running if the source file does not exist."""
	def run(self):
		if os.path.exists(self.filename):
			return super().run()
		return False

def get_trimmed_file_as_array(filename, filter=False):
	"""
	Gets the contents of a file as an array. Returns false if file is not
	found. White space at the start and end of lines is ignored.
	Empty lines are also ignored.

	Args:
		filename - The name of the file to read
		filter - If a function is given, the trimmed line is fed to the
			filter function and the result is stored in the array.
	"""
	file_array = False
	if os.path.exists(filename):
		with open(filename, 'r', errors='replace') as list_file:
			file_array = []
			for line in list_file:
				line = line.strip()
				if len(line) > 0:
					if callable(filter):
						line = filter(line)
					file_array.append(line)
	return file_array
