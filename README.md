# kcroles

kcroles is a command-line tool. It reads access requests from Excel workbooks and applies them to a Keycloak server.

For each request row it does the following:

1. It signs in to the row's realm through the `admin-cli` client, using the password grant.
2. It looks up the target client by its client ID. Resolved IDs are cached for the rest of the run.
3. It finds the client's subgroup under the top-level `Roles` group, and creates it if it is missing.
4. It carries out the row's action:
   - **Create new role and add users to this role**: creates the client role and a matching subgroup, maps the role onto the subgroup and adds the users to it. If the role or the subgroup already exists, the row is handled as "Associate users with role" instead.
   - **Associate users with role**: maps the role onto its subgroup and adds the users to it.
   - **Remove users from role**: removes the users from the role's subgroup.

Users are looked up by exact username. These lookups are rate-limited to one per second, with a burst of 10.

## Installation

```
pip install .
```

To include the test dependencies:

```
pip install ".[test]"
```

## Usage

```
kcroles [DIRECTORY]
kcroles --version
```

`DIRECTORY` is the directory that holds the workbooks. If you leave it out, the current working directory is used. Every `.xlsx` and `.xls` file directly in that directory is processed, in order of file name.

The admin account is read from the environment variables `KEYCLOAK_USER` and `KEYCLOAK_PASSWORD`:

```
KEYCLOAK_USER=admin KEYCLOAK_PASSWORD=password kcroles ./requests
```

When you use the package from Python, you can call `kcroles.authentication.set_credentials(user, password)` instead. If no credentials are set, authentication fails for every operation and the error is logged.

Progress is written to the console, and each operation shows a progress bar. Warnings appear in yellow and errors in red. The same log lines are appended to `keycloak_configurator.log` in the workbook directory, together with each error that an operation records.

When it has finished, the program waits for Enter before it exits. The exit status is 1 if the log file or the directory could not be opened. Otherwise it is 0, including after Ctrl+C. Errors in individual files or operations are logged but do not change the exit status.

## Workbook format

Each workbook needs a sheet named `Request`. The first row is a header and is skipped. Each following row must fill six columns:

| Column | Meaning | Allowed values |
|---|---|---|
| A | Keycloak type | `Employee`, `Partner`, `Customer` |
| B | Environment | `Prod`, `Dev`, `Test` |
| C | Action | one of the three actions above |
| D | Client ID | the client's `clientId` |
| E | Role name | name of the client role |
| F | User logins | comma-separated usernames; blank entries are ignored |

A row is skipped with a log message in any of these cases:

- it has fewer than six columns;
- a required field is blank;
- its type, environment or action is not one of the allowed values.

The type and environment decide the server address and the realm. The mapping is in `kcroles.excel.get_url_and_realm`, `get_realm_by_instance` and `get_domain_by_instance_and_env`. The host names are fixed placeholders under `your_domain.ru`, so edit them to match your deployment.

## Using it as a library

- `kcroles.excel.read_excel_file(path)` returns the valid rows of a workbook as `kcroles.operation.Operation` objects.
- `Operation` has `authenticate()`, `find_client_id_by_name()`, `find_or_create_group_by_name()` and `process_role(bar)`. Errors are collected in `Operation.errors`, and `print_errors()` logs them.
- `kcroles.app.App` runs the whole batch over a directory.
- `kcroles.xlsx.Workbook` is a small reader for the cell text of `.xlsx` files.

## Limitations

- Workbooks are read by the package's own `.xlsx` reader. Files in the old binary `.xls` format are picked up but fail to open, and the failure is reported as an error for that file.
- Server addresses are not configurable from the command line. They come from the fixed mapping described above.
- Only cell text is read. Formulas are not evaluated, and cached values are used as stored.