from docmodel.model.field import Field
from docmodel.model.codec import Codec, ObjectIdCodec
from docmodel.model.model import Model
from docmodel.model.registry import ModelRegistry, SchemaEntry, connect, default_registry
from docmodel.model.schema import Schema
