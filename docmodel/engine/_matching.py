"""
Evaluation of conditions, updates, projections and sorts against in-memory records,
following the document database's query language.
"""
from .._util import NoVal, get_path, set_path, unset_path, split_path

_COMPARISONS = {
  "$gt": lambda value, arg: value > arg,
  "$gte": lambda value, arg: value >= arg,
  "$lt": lambda value, arg: value < arg,
  "$lte": lambda value, arg: value <= arg,
}


def matches(record, conditions):
  """True if ``record`` satisfies every condition in ``conditions``."""
  for key, condition in (conditions or {}).items():
    if key == "$and":
      if not all(matches(record, sub) for sub in condition):
        return False
    elif key == "$or":
      if not any(matches(record, sub) for sub in condition):
        return False
    elif key == "$nor":
      if any(matches(record, sub) for sub in condition):
        return False
    elif key.startswith("$"):
      raise ValueError("Unsupported top level operator %s" % key)
    elif not _matches_field(get_path(key, record, NoVal), condition):
      return False
  return True


def _is_operator_dict(condition):
  return isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition)


def _matches_field(value, condition):
  if not _is_operator_dict(condition):
    return _equals(value, condition)
  for operator, arg in condition.items():
    if not _apply_operator(value, operator, arg):
      return False
  return True


def _equals(value, expected):
  if value is NoVal:
    return expected is None
  if isinstance(value, list) and not isinstance(expected, list):
    return expected in value
  return value == expected


def _apply_operator(value, operator, arg):
  # pylint: disable=too-many-return-statements
  if operator == "$eq":
    return _equals(value, arg)
  if operator == "$ne":
    return not _equals(value, arg)
  if operator == "$in":
    return any(_equals(value, item) for item in arg)
  if operator == "$nin":
    return not any(_equals(value, item) for item in arg)
  if operator == "$exists":
    return (value is not NoVal) == bool(arg)
  if operator == "$not":
    return not _matches_field(value, arg)
  if operator in _COMPARISONS:
    if value is NoVal or value is None:
      return False
    candidates = value if isinstance(value, list) else [value]
    for candidate in candidates:
      try:
        if _COMPARISONS[operator](candidate, arg):
          return True
      except TypeError:
        continue
    return False
  raise ValueError("Unsupported operator %s" % operator)


def is_operator_update(update):
  return any(key.startswith("$") for key in update)


def apply_update(record, update, inserting=False):
  """
  Applies ``update`` to ``record`` in place.
  An update without ``$`` operators is applied as ``$set``.
  ``$setOnInsert`` only applies when ``inserting``, i.e. to the record an upsert creates.
  """
  if not is_operator_update(update):
    update = {"$set": update}
  for operator, changes in update.items():
    for path, arg in changes.items():
      if operator == "$set":
        set_path(path, arg, record)
      elif operator == "$setOnInsert":
        if inserting:
          set_path(path, arg, record)
      elif operator == "$unset":
        unset_path(path, record)
      elif operator == "$inc":
        set_path(path, get_path(path, record, 0) + arg, record)
      elif operator == "$push":
        current = get_path(path, record)
        set_path(path, (current if isinstance(current, list) else []) + [arg], record)
      else:
        raise ValueError("Unsupported update operator %s" % operator)
  return record


def upsert_seed(conditions):
  """Record a failed upsert starts from: the plain equality conditions."""
  seed = {}
  for key, condition in conditions.items():
    if key.startswith("$"):
      continue
    if _is_operator_dict(condition):
      if "$eq" in condition:
        set_path(key, condition["$eq"], seed)
      continue
    set_path(key, condition, seed)
  return seed


def normalize_fields(fields):
  """
  Projection as a dict {path: 0 or 1}.
  Accepts a dict, a list of paths, or a space separated string where ``-name`` excludes.
  """
  if not fields:
    return None
  if isinstance(fields, dict):
    return dict((key, 1 if value else 0) for key, value in fields.items())
  if isinstance(fields, str):
    fields = fields.split()
  projection = {}
  for field in fields:
    if field.startswith("-"):
      projection[field[1:]] = 0
    else:
      projection[field] = 1
  return projection


def project(record, fields):
  """Copy of ``record`` restricted by the projection ``fields``."""
  projection = normalize_fields(fields)
  if not projection:
    return record
  include_id = projection.pop("_id", 1)
  inclusive = [path for path, flag in projection.items() if flag]

  if inclusive:
    projected = {}
    for path in inclusive:
      value = get_path(path, record, NoVal)
      if value is not NoVal:
        set_path(path, value, projected)
  else:
    projected = dict(record)
    for path in projection:
      unset_path(path, projected)

  if include_id and "_id" in record:
    projected["_id"] = record["_id"]
  elif not include_id:
    projected.pop("_id", None)
  return projected


def normalize_sort(sort):
  """Sort spec as a list of (path, direction). Accepts a dict, a list of pairs or ``"a -b"``."""
  if not sort:
    return []
  if isinstance(sort, dict):
    return list(sort.items())
  if isinstance(sort, str):
    return [(key[1:], -1) if key.startswith("-") else (key, 1) for key in sort.split()]
  return [tuple(pair) for pair in sort]


class _SortKey(object):
  """Orders missing values first, then values of one type among themselves, then by type name."""

  def __init__(self, value):
    self.value = value

  def _rank(self):
    if self.value is NoVal or self.value is None:
      return (0, "")
    return (1, type(self.value).__name__)

  def __lt__(self, other):
    if self._rank() != other._rank():
      # Numbers compare across int and float.
      if isinstance(self.value, (int, float)) and isinstance(other.value, (int, float)):
        return self.value < other.value
      return self._rank() < other._rank()
    if self._rank()[0] == 0:
      return False
    return self.value < other.value

  def __eq__(self, other):
    return not self < other and not other < self


def sort_records(records, sort):
  """Stable multi-key sort."""
  for path, direction in reversed(normalize_sort(sort)):
    records = sorted(
      records,
      key=lambda record, path=path: _SortKey(get_path(split_path(path), record, NoVal)),
      reverse=direction in (-1, "desc", "descending"))
  return records
