def no_null_values(dct):
  out = {}
  for key in dct:
    val = dct[key]
    if val is not None:
      out[key] = val
  return out


def dict_dup(data):
  """Copy of record data. Dicts and lists are copied all the way down."""
  if isinstance(data, dict):
    obj = {}
    for key in data:
      obj[key] = dict_dup(data[key])
    return obj
  elif isinstance(data, list):
    return [dict_dup(item) for item in data]
  else:
    return data


def split_path(path):
  """``"a.b"`` -> ``["a", "b"]``; lists pass through."""
  if isinstance(path, (list, tuple)):
    return list(path)
  return path.split(".")


def get_path(path, data, default=None):
  """
  Recursively looks for :samp:`path` in :samp:`data`.
  e.g. :samp:`get_path("a.b", {"a": {"b": 1}})` should be 1.

  :param path: Dotted string or list of dict keys, outermost to innermost.
  :param data: Dict of data (potentially nested).
  :return:
    :samp:`default` if the path can not be traversed to the end;
    else the value at the end of the path.
  """
  for path_elem in split_path(path):
    if (not isinstance(data, dict)) or path_elem not in data:
      return default
    data = data[path_elem]
  return data


def set_path(path, value, data):
  """
  Opposite of get_path.
  If path does not fully exist yet, creates parts of the path as it goes.
  e.g. :samp:`set_path("a.b", 1, {"a": {}})` should change data to be :samp:`{"a": {"b": 1}}`.
  """
  path = split_path(path)
  last_key = path[-1]
  for path_elem in path[0:-1]:
    if not isinstance(data.get(path_elem), dict):
      data[path_elem] = {}
    data = data[path_elem]
  data[last_key] = value


def unset_path(path, data):
  """Removes the value at :samp:`path`; a path that does not exist is left alone."""
  path = split_path(path)
  for path_elem in path[0:-1]:
    data = data.get(path_elem)
    if not isinstance(data, dict):
      return
  data.pop(path[-1], None)


class _NoVal(object):
  """Marks an argument that was not passed at all, as opposed to passed as None."""

  def __repr__(self):
    return "NoVal"

  def __bool__(self):
    return False


NoVal = _NoVal()
