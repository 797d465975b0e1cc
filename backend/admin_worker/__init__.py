"""RQ worker process for crawl and maintenance jobs."""
