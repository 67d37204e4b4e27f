# rbacadmin

The data layer of a role-based access control admin service:

- **Configuration** (`rbacadmin.config`): typed dataclasses (`Config`, `HTTP`, `JWTAuth`, `Casbin`, `Log`, `Gorm`, `MySQL`, `Postgres`, `Sqlite3` and others) filled from defaults, environment variables and TOML, JSON or YAML files.
- **Database helpers** (`rbacadmin.db`): a SQLite `Database` with nestable transactions, an immutable chainable `Query`, ordering (`OrderField`, `OrderDirection`, `parse_order`) and pagination (`PaginationParam`, `PaginationResult`, `wrap_page_query`, `find_page`, `find_one`, `check`).
- **Repositories**:
  - `rbacadmin.menu`: `MenuRepo`, `MenuActionRepo`, `MenuActionResourceRepo`
  - `rbacadmin.role`: `RoleRepo`, `RoleMenuRepo`
  - `rbacadmin.user`: `UserRepo`, `UserRoleRepo`
- **Schema migration** (`rbacadmin.migrate.auto_migrate`): creates the tables, missing columns and indexes the repositories use.
- **Policy loading** (`rbacadmin.casbin_adapter.CasbinAdapter`): turns stored data into policy lines.

## Installation

```
pip install .
```

Python 3.11 or newer is required.

## Configuration

```python
import sys
from rbacadmin.config import load_config, print_with_json

config = load_config("config.toml", "overrides.yaml")
print(config.http.port, config.is_debug_mode())
print(config.mysql.dsn())
print_with_json(config, sys.stdout)
```

Settings are applied in this order: built-in defaults, then environment variables, then each file in turn, later files overriding earlier ones. Only paths whose names end in `toml`, `json` or `yaml` are read; others are ignored. Keys in files are matched without regard to case, underscores or dashes (`MaxAge`, `max_age`).

Environment variables are named `CONFIG_` followed by the section and setting in upper case, e.g. `CONFIG_HTTP_PORT=8080` or `CONFIG_RUNMODE=debug`. Lists are comma separated; booleans accept `1`/`0`, `t`/`f`, `true`/`false`. Pass `environ={...}` to `load_config` to use a mapping other than `os.environ`.

A missing file, a parse error or a value of the wrong type raises `ConfigError`. `print_with_json` writes `config_to_json(config)` only when `print_config` is set.

## Database and repositories

```python
from rbacadmin.db import Database, OrderDirection, OrderField, QueryOptions
from rbacadmin.migrate import auto_migrate
from rbacadmin.user import User, UserQueryParam, UserRepo

db = Database(":memory:")
auto_migrate(db, "sqlite3")

users = UserRepo(db)
users.create(User(user_name="alice", real_name="Alice", status=1))

result = users.query(
    UserQueryParam(query_value="ali", pagination=True, current=1, page_size=10),
    QueryOptions(order_fields=[OrderField("id", OrderDirection.DESC)]),
)
print(result.page_result.total, [u.user_name for u in result.data])
```

Every query parameter class extends `PaginationParam`: with `pagination=False` (the default) all matching rows are returned and `page_result` is `None`; with `only_count=True` only the total is computed.

`create` returns the new row's id; `update`, `delete` and the `update_*` methods return the number of rows changed. `update` writes only fields that are set: non-zero plain fields and optional fields that are not `None`. `get` returns `None` when no row has the id.

`with db.transaction():` runs a block in a transaction, committing on success and rolling back on an exception. `lock=True` takes the write lock at the start. A transaction opened inside another joins the outer one.

`auto_migrate` raises `ValueError` for a database type other than `mysql`, `sqlite3` or `postgres`, and returns the names of the tables it migrated.

## Policy loading

```python
from rbacadmin.casbin_adapter import CasbinAdapter
from rbacadmin.menu import MenuActionResourceRepo
from rbacadmin.role import RoleMenuRepo, RoleRepo
from rbacadmin.user import UserRepo, UserRoleRepo

adapter = CasbinAdapter(
    role_repo=RoleRepo(db),
    role_menu_repo=RoleMenuRepo(db),
    menu_resource_repo=MenuActionResourceRepo(db),
    user_repo=UserRepo(db),
    user_role_repo=UserRoleRepo(db),
)
for line in adapter.load_policy():
    print(line)
```

`load_policy` returns role lines `p,<role_id>,<path>,<method>` first, then user lines `g,<user_id>,<role_id>` for users with status 1. Resources with an empty path or method are skipped, and repeated path/method pairs within a role appear once.

The adapter writes nothing back: `save_policy`, `add_policy`, `remove_policy` and `remove_filtered_policy` accept their arguments and return `False`.

## What this package does not do

- It has no HTTP server, API handlers, login, captcha or token handling, and no command-line program.
- Storage is SQLite only. The `MySQL` and `Postgres` settings format connection strings through `dsn()`, but nothing connects to those databases.
- It does not evaluate access requests itself; it only produces the policy lines for an enforcer to use.

## Tests

```
pip install .[test]
pytest
```