"""Database-backed stores for jobs, crawl logs, movies, lookups and trash."""
