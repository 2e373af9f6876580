class RequestResult(object):
  """One Data API request and the response it got, as handed to a client's observer."""
  # pylint: disable=too-many-instance-attributes

  def __init__(
      self, method, path, request_content,
      response_raw, response_content, status_code, response_headers,
      start_time, end_time):
    self.method = method
    """HTTP method; the Data API only takes POST."""
    self.path = path
    """Path relative to the client's endpoint, e.g. ``action/find``."""
    self.request_content = request_content
    """Request body before Extended JSON encoding, or None."""
    self.response_raw = response_raw
    """Response body as text."""
    self.response_content = response_content
    """Parsed response body; None if it was not valid JSON."""
    self.status_code = status_code
    self.response_headers = response_headers
    """Case-insensitive dict of response headers."""
    self.start_time = start_time
    self.end_time = end_time

  @property
  def action(self):
    """Data API action name, the last segment of :any:`path`."""
    return self.path.rsplit("/", 1)[-1]

  @property
  def namespace(self):
    """``database.collection`` the request targeted, or None."""
    content = self.request_content
    if not isinstance(content, dict) or "collection" not in content:
      return None
    return "%s.%s" % (content.get("database"), content["collection"])

  @property
  def time_taken(self):
    """Seconds between sending the request and receiving the response."""
    return self.end_time - self.start_time
