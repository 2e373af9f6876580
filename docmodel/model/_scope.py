"""
Discriminator scoping of conditions and hydration of engine records.

Classes of one hierarchy share a collection; every record carries the name of the class
that saved it under the hierarchy's discriminator key. Conditions issued through a class
whose collection is shared are narrowed to that class's records, and records coming back
are turned into instances of the class that saved them.
"""


def scope_conditions(entry, conditions):
  """
  Copy of ``conditions`` narrowed to ``entry``'s records.

  The discriminator is only added when the collection is shared and ``conditions``
  has no value of its own for the discriminator key. The caller's dict is not modified.
  """
  conditions = dict(conditions or {})
  if entry.is_scoped() and entry.discriminator_key not in conditions:
    conditions[entry.discriminator_key] = entry.name
  return conditions


def tag_upsert(entry, update):
  """
  Copy of ``update`` that tags a record inserted by an upsert with ``entry``'s name.

  The tag goes in through ``$setOnInsert``, so matched records keep theirs. It is added
  even while the collection is not shared: once a subclass is declared, the root's queries
  only match records carrying the root's name.
  An update that already writes the discriminator key is left as it is.
  """
  if any(key.startswith("$") for key in update):
    update = dict(update)
  else:
    update = {"$set": dict(update)}
  key = entry.discriminator_key
  if any(key in (changes or {}) for changes in update.values()):
    return update
  on_insert = dict(update.get("$setOnInsert") or {})
  on_insert[key] = entry.name
  update["$setOnInsert"] = on_insert
  return update


def hierarchy_conditions(entry):
  """Condition matching ``entry``'s records and those of all its schema-bearing descendants."""
  names = [entry.name] + [descendant.name for descendant in entry.descendants()]
  return {entry.discriminator_key: {"$in": names}}


def model_for_record(cls, entry, record):
  """
  The class to hydrate ``record`` into when it was read through ``cls``.

  A record tagged with a descendant's name becomes an instance of that descendant;
  anything else becomes an instance of ``cls``.
  """
  tag = record.get(entry.discriminator_key)
  if tag is None or tag == entry.name:
    return cls
  descendant = entry.find_descendant(tag)
  if descendant is None:
    return cls
  return descendant.model


def hydrate_one(cls, record):
  """Single-record results: None passes through unchanged."""
  if record is None:
    return None
  # pylint: disable=protected-access
  return model_for_record(cls, cls._schema_entry, record)._from_record(record)


def hydrate_many(cls, records):
  """Sequence results: every record is hydrated, None entries are dropped."""
  return [hydrate_one(cls, record) for record in records if record is not None]
