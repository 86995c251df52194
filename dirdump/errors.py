class DirDumpError(Exception):
	"""Base class for every failure raised by dirdump."""
	pass

class SessionError(DirDumpError):
	"""Binding or authenticating to the directory root failed."""
	def __init__(self, message, root_path=None):
		super().__init__(message)
		self.root_path = root_path

class DirectoryUnavailable(SessionError):
	"""The directory server could not be reached at all."""
	pass

class QueryFailed(DirDumpError):
	"""A search request (first or follow-up page) was rejected or the connection dropped."""
	def __init__(self, message, search_base=None, search_filter=None, result_code=None):
		super().__init__(message)
		self.search_base = search_base
		self.search_filter = search_filter
		self.result_code = result_code

class QueryTimeout(QueryFailed):
	pass

class NotFound(DirDumpError):
	"""A single-result lookup matched nothing."""
	def __init__(self, message, identifier=None):
		super().__init__(message)
		self.identifier = identifier

class MalformedRecord(DirDumpError):
	"""A returned entry lacks its mandatory identifier attribute."""
	def __init__(self, message, kind=None, attributes=None):
		super().__init__(message)
		self.kind = kind
		self.attributes = attributes

class InvalidArgument(DirDumpError, ValueError):
	pass

class CycleDetected(DirDumpError):
	"""A manager chain revisits an identifier or grows past the depth bound."""
	def __init__(self, message, chain=None):
		super().__init__(message)
		self.chain = list(chain or [])
