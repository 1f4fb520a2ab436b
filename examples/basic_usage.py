"""Example usage of cloud_function_exporter without a running server.

A stub client stands in for the Cloud Functions API so the describe/collect
cycle of one scrape can be seen locally.
"""
import json

from prometheus_client import CollectorRegistry, generate_latest

from cloud_function_exporter import Config, FunctionCollector, Target, get_logger


class StubClient:
    def invoke(self, function):
        return json.dumps({
            "result": (
                "# HELP jobs_processed_total Jobs processed by the function\n"
                "# TYPE jobs_processed_total counter\n"
                'jobs_processed_total{queue="high"} 12\n'
                'jobs_processed_total{queue="low"} 40\n'
                "# TYPE queue_depth gauge\n"
                'queue_depth{queue="high",shard="0"} 3\n'
            )
        })


def main():
    cfg = Config()
    log = get_logger(cfg)

    registry = CollectorRegistry(auto_describe=False)
    # registering runs the description phase, generate_latest the collection phase
    registry.register(FunctionCollector(Target("us-central1", "queue-stats"), StubClient(), log))
    print(generate_latest(registry).decode())


if __name__ == "__main__":
    main()
