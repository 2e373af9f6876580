"""Error types raised by docmodel and its storage engines."""

from requests import codes


def _get_or_raise(request_result, dct, key):
  if isinstance(dct, dict) and key in dct:
    return dct[key]
  else:
    raise UnexpectedError(
      "Response JSON does not contain expected key %s" % key, request_result)


class ConfigurationError(Exception):
  """
  A model class is not set up for what was asked of it.

  Raised synchronously and never retried: persisting a schema-less model,
  compiling without a name, schema or engine, or redefining a frozen schema.
  """
  pass


#region StorageError

class StorageError(Exception):
  """
  Any failure reported by a storage engine.

  Errors pass through the model layer unchanged and are never retried.
  Engines raise driver failures as a StorageError.
  """

  @staticmethod
  def raise_for_status_code(request_result):
    code = request_result.status_code
    # pylint: disable=no-member, too-many-return-statements
    if 200 <= code <= 299:
      pass
    elif code == codes.bad_request:
      raise BadRequest(request_result)
    elif code == codes.unauthorized:
      raise Unauthorized(request_result)
    elif code == codes.forbidden:
      raise PermissionDenied(request_result)
    elif code == codes.not_found:
      raise NotFound(request_result)
    elif code == codes.internal_server_error:
      raise InternalError(request_result)
    elif code == codes.unavailable:
      raise UnavailableError(request_result)
    else:
      raise UnexpectedError("Unexpected status code.", request_result)

  def __init__(self, description, request_result=None):
    super(StorageError, self).__init__(description)
    self.description = description
    self.request_result = request_result
    """:any:`RequestResult` for the request that caused this error, if there was one."""


class UnexpectedError(StorageError):
  """Error for when the server returns an unexpected kind of response."""
  pass


class HttpError(StorageError):
  def __init__(self, request_result):
    self.error = ErrorData.from_dict(request_result.response_content, request_result)
    """:py:class:`ErrorData` sent by the server."""
    super(HttpError, self).__init__(self.error.description, request_result)

  def __str__(self):
    return repr(self.error)


class BadRequest(HttpError):
  """HTTP 400 error."""
  pass


class Unauthorized(HttpError):
  def __init__(self, request_result):
    super(Unauthorized, self).__init__(request_result)
    self.error.description = "Unauthorized. Check that the endpoint and api key are correct."


class PermissionDenied(HttpError):
  """HTTP 403 error."""
  pass


class NotFound(HttpError):
  """HTTP 404 error."""
  pass


class InternalError(HttpError):
  """HTTP 500 error."""
  pass


class UnavailableError(HttpError):
  """HTTP 503 error."""
  pass


class DocumentNotFound(StorageError):
  """A save or remove targeted a record that is no longer stored."""
  pass


class DuplicateKey(StorageError):
  """An insert reused the ``_id`` of a stored record."""
  pass


class VersionConflict(StorageError):
  """The stored version counter moved since the instance was read."""
  pass


class ValidationError(StorageError):
  """A record was rejected by a strict schema."""

  def __init__(self, description, fields):
    super(ValidationError, self).__init__(description)
    self.fields = fields
    """Names of the offending fields."""

#endregion


class ErrorData(object):
  """
  Error body returned by the Data API, e.g.
  ``{"error": "...", "error_code": "InvalidParameter", "link": "..."}``.
  """

  @staticmethod
  def from_dict(dct, request_result):
    return ErrorData(
      _get_or_raise(request_result, dct, "error_code"),
      _get_or_raise(request_result, dct, "error"),
      dct.get("link"))

  def __init__(self, code, description, link=None):
    self.code = code
    """Error code, e.g. ``InvalidParameter``."""
    self.description = description
    """Error description."""
    self.link = link
    """Link to the server log entry. May be None."""

  def __repr__(self):
    return "ErrorData(code=%s, description=%s, link=%s)" % \
      (repr(self.code), repr(self.description), repr(self.link))

  def __eq__(self, other):
    return self.__class__ == other.__class__ and \
      self.code == other.code and \
      self.description == other.description and \
      self.link == other.link

  def __ne__(self, other):
    # pylint: disable=unneeded-not
    return not self == other
