from docmodel._json import to_json


def logger(logger_func):
  """
  Function that can be the ``observer`` for a :any:`DataApiClient`.
  Will call ``logger_func`` on a string representation of each :any:`RequestResult`.

  Use it like::

    import logging
    client = DataApiClient(observer=logger(logging.getLogger("docmodel.http").debug), ...)
    Animal.find({})  # logs the find request

  :param logger_func: Callback taking a string to be logged.
  """
  return lambda request_result: logger_func(show_request_result(request_result))


def show_request_result(request_result):
  """
  Translates a :any:`RequestResult` to a string suitable for logging.
  The first line names the action and, when known, the ``database.collection`` it ran on.
  """
  rr = request_result
  parts = []
  log = parts.append

  def _indent(s):
    return ("\n  ").join(s.split("\n"))

  target = " on %s" % rr.namespace if rr.namespace else ""
  log("DataApi %s /%s%s\n" % (rr.method, rr.path, target))
  if rr.request_content is not None:
    log("  Request JSON: %s\n" % _indent(to_json(rr.request_content, pretty=True)))
  log("  Response headers: %s\n" % _indent(to_json(dict(rr.response_headers), pretty=True)))
  log("  Response JSON: %s\n" % _indent(to_json(rr.response_content, pretty=True)))
  log("  Response (%i): Network latency %ims\n" % (rr.status_code, int(rr.time_taken * 1000)))

  return "".join(parts)
