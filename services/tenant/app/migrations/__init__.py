"""Static catalog of migration scripts per schema class.

Adding a script means importing its module here; nothing is discovered at
runtime.
"""

from typing import Dict, Tuple

from shared.tenancy import Migration, MigrationRunner, SchemaClass

from .common import create_exercises, create_nutrition_items
from .control import create_subscriptions, create_tenants
from .tenant import create_access_tables, create_settings_table

MIGRATIONS: Dict[SchemaClass, Tuple[Migration, ...]] = {
    SchemaClass.SYS: (
        Migration.from_module(create_tenants),
        Migration.from_module(create_subscriptions),
    ),
    SchemaClass.COMMON: (
        Migration.from_module(create_exercises),
        Migration.from_module(create_nutrition_items),
    ),
    SchemaClass.TENANT: (
        Migration.from_module(create_access_tables),
        Migration.from_module(create_settings_table),
    ),
}


def build_runners() -> Dict[SchemaClass, MigrationRunner]:
    return {schema_class: MigrationRunner(scripts) for schema_class, scripts in MIGRATIONS.items()}
