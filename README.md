# shopmesh

Building blocks for a small e-commerce back end: a product catalogue with a
Redis cache in front of the database, orders made of items sold by
partners, a 10 % partner commission recorded when an item is completed,
user accounts with roles (`admin`, `partner`, `buyer`), password hashing
and JWT handling.

## Installing

```
pip install .
pip install ".[test]"   # with the test tools
```

## What is in the package

### `shopmesh.config`

`load_order_config`, `load_product_config` and `load_user_config` read
settings from a mapping you pass in, or, when called with no argument, from
the process environment after loading a `.env` file in the working
directory if there is one. They return frozen dataclasses (`OrderConfig`,
`ProductConfig`, `UserConfig`) made of `DatabaseConfig`, `ServerConfig`,
`JWTConfig`, `RedisConfig` and `CallServiceConfig`.
`DatabaseConfig.dsn()` gives a libpq keyword/value connection string.

| Variable | Read by | Meaning |
|---|---|---|
| `DB_HOST`, `DB_PORT`, `DB_USER`, `DB_PASSWORD`, `DB_NAME`, `DB_SSLMODE` | all | database connection |
| `SERVER_PORT` | all | port setting |
| `GIN_MODE` | all | run mode setting |
| `JWT_SECRET` | all | HMAC key for tokens |
| `JWT_EXPIRES_IN` | user | token lifetime in whole hours (anything else counts as 0) |
| `REDIS_HOST`, `REDIS_PORT`, `REDIS_PASSWORD` | product | cache location |
| `SERVICE_USER_URL`, `SERVICE_PRODUCT_URL` | order | base URLs of the other services |
| `SERVICE_COMMISSION_RATE` | order | must parse as a number, else `ConfigError` |

```python
from shopmesh.config import load_order_config

cfg = load_order_config({"SERVICE_COMMISSION_RATE": "0.1", "DB_PASSWORD": "password"})
print(cfg.database.dsn())
```

### `shopmesh.auth`

- `UserRole` – `ADMIN`, `BUYER`, `PARTNER`.
- `TokenValidator(secret_key)` – `validate_token(token)` checks an
  HMAC-signed JWT and its `exp`, `user_id` and `role` claims and returns
  `Claims`, or raises `AuthError`.
- `TokenService(secret_key, expiration_hours)` – also requires an `email`
  claim, and adds `generate_token(user)` (HS256), `hash_password` and
  `check_password_hash` (bcrypt; passwords over 72 bytes are refused).

### `shopmesh.users`

The `User` table, `PartnerSummary`, `init_db(url)` and `UserRepository`
(create, look up by id or e-mail, update, delete, `set_user_active`,
`get_all_users`, `get_partners`). Failed lookups raise `UserNotFound`.

### `shopmesh.web`

Flask helpers: `error_response` and `success_response` build the JSON
envelopes, `install_cors(app)` adds permissive CORS headers and answers
`OPTIONS` with 204, `authenticate(validator)` is a view decorator that
expects `Authorization: Bearer token` and stores the claims on `flask.g`,
and `require_role(role)` refuses other roles with 403.

### `shopmesh.product`

- `models` – the `Product` table, `UpdateRequest` and `init_db(url)`.
- `repository` – `ProductRepository`; `get_products_by_name` matches a
  case-insensitive substring. Missing ids raise `ProductNotFound`.
- `cache` – `RedisCache`, storing JSON values; `RedisCache.from_address`
  connects to `host:port`.
- `service` – `ProductService(repository, cache)`, a read-through cache
  with a 60-minute lifetime under the keys `product:<id>`,
  `product_by_name:<name>` and `products:all`. Cache failures are ignored;
  store failures raise `ProductServiceError`.

### `shopmesh.order`

- `models` – the `Order`, `OrderItem` and `PartnerCommission` tables,
  the JSON views `ProductInfo`, `OrderItemView`, `OrderView`,
  `CommissionView`, `PartnerInfo`, `Notification`, and `init_db(url)`.
- `repository` – `OrderRepository`, `AdminRepository`,
  `PartnerCommissionRepository` and `PartnerRepository`; they raise
  `RecordNotFound` and `NotOwnerError`.
- `clients` – `ServiceClient` asks the user service for partners and the
  product service for product details; failures raise `ServiceCallError`.
- `buyers` – `BuyerRepository.create_order` prices each item from the
  product service, totals the order and stores it in one transaction
  (`OrderCreationError` otherwise); `get_orders_by_buyer` lists a buyer's
  orders, optionally filtered by item status.
- `services` – `BuyerService`, `PartnerService`, `AdminService` and
  `PartnerCommissionService`. A partner confirms a pending item and the
  buyer is notified in the background by a POST to
  `http://localhost:8083/api/notify`; a buyer cancels a pending item, or
  completes a confirmed one, which records a commission of
  `price × 0.1 × quantity`. Other transitions raise `OrderStatusError`.

## What the package does not do

There is no runnable server and no command to start one: the package
defines no HTTP routes for products, orders or users, and no registration
or login endpoints. To serve the services, build a Flask application
yourself from the repositories and services above together with the
helpers in `shopmesh.web`.

## Tests

```
pytest
```