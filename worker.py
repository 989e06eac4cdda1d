"""
RQ worker entry point — runs analyzer jobs from the 'analyzers' queue.

    python worker.py
"""
from rq import Worker

from app.analyzers.orchestrator import get_queue
from app.extensions import redis_client
from app.logging_config import configure_logging
from app.services.circuit_breaker import init_breakers


def main():
    configure_logging()
    init_breakers(redis_client)
    Worker([get_queue()], connection=redis_client).work()


if __name__ == '__main__':
    main()
