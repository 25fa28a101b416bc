[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "shopmesh"
version = "0.1.0"
description = "E-commerce back-end building blocks: products with a Redis cache, orders, partner commissions, users and JWT auth"
requires-python = ">=3.10"
keywords = ["e-commerce", "orders", "products", "flask", "jwt", "sqlalchemy", "redis"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Office/Business",
]
dependencies = [
    "flask>=2.3",
    "sqlalchemy>=2.0",
    "pyjwt>=2.8",
    "bcrypt>=4.0",
    "requests>=2.31",
    "redis>=5.0",
    "python-dotenv>=1.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "responses>=0.24",
]

[tool.hatch.build.targets.wheel]
packages = ["shopmesh"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
