"""Products: models, database storage, Redis caching and the cached product service."""