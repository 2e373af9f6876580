__title__ = "docmodel"
__version__ = "1.0.0"
__author__ = "docmodel contributors"
__license__ = "MPL 2.0"
__copyright__ = "2026 docmodel contributors"

from docmodel.model.field import Field
from docmodel.model.model import Model
from docmodel.model.registry import ModelRegistry, connect, default_registry
