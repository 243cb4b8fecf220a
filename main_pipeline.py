"""
Command-line runner for hybrid retrieval.

Usage:
    python main_pipeline.py retrieve "How does PaymentService process a refund?"
    python main_pipeline.py batch questions.txt        # One question per line
    python main_pipeline.py check-env                  # Show connection settings
"""
import argparse
import json
import os
from pathlib import Path

from dotenv import load_dotenv

from src.config import RetrievalConfig, OUTPUTS_DIR
from src.hybrid_retrieval.retrieval import HybridRetriever, RetrievalResult
from src.logger import setup_logging, get_logger, log_timing


def load_config(path=None) -> RetrievalConfig:
    """YAML file when given, environment otherwise."""
    if path:
        return RetrievalConfig.from_yaml(path)
    return RetrievalConfig.from_env()


def result_to_dict(result: RetrievalResult, top: int = 10) -> dict:
    nodes = result.subgraph.nodes
    top_nodes = []
    for node_id in result.top_node_ids[:top]:
        node = nodes.get(node_id)
        top_nodes.append({
            "id": node_id,
            "type": node.type if node else None,
            "name": node.name if node else None,
            "score": round(result.score_map[node_id], 4),
        })
    return {
        "query": result.query,
        "intent": result.metadata.get("intent"),
        "nodes": top_nodes,
        "metadata": result.metadata,
    }


def cmd_retrieve(args):
    """Command: one question"""
    logger = get_logger(__name__)
    with HybridRetriever(load_config(args.config)) as retriever:
        with log_timing(logger, "Retrieval"):
            result = retriever.retrieve(args.question)

    payload = result_to_dict(result, args.top)
    if args.json:
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    print(f"Intent: {payload['intent']}  timed out: {result.timed_out}")
    for i, node in enumerate(payload["nodes"], 1):
        print(f"{i:2d}. [{node['type']}] {node['name']}  {node['score']:.4f}  ({node['id']})")


def cmd_batch(args):
    """Command: every line of a questions file"""
    logger = get_logger(__name__)
    questions = [
        line.strip()
        for line in Path(args.questions).read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]
    output = Path(args.output) if args.output else OUTPUTS_DIR / "retrieval_results.jsonl"
    output.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"Running {len(questions)} questions, writing to {output}")

    with HybridRetriever(load_config(args.config)) as retriever, \
            open(output, "w", encoding="utf-8") as f:
        for i, question in enumerate(questions, 1):
            with log_timing(logger, f"Question {i}/{len(questions)}"):
                result = retriever.retrieve(question)
            f.write(json.dumps(result_to_dict(result, args.top), ensure_ascii=False) + "\n")

    logger.info(f"Saved results for {len(questions)} questions")


def cmd_check_env(args):
    """Command: environment check"""
    logger = get_logger(__name__)

    def check_env_var(name, required=False, sensitive=False):
        value = os.getenv(name)
        has_value = bool(value and value.strip())
        if sensitive and has_value:
            display_value = value[:8] + "..." + value[-4:] if len(value) > 12 else "***"
        else:
            display_value = value if has_value else "(not set)"
        logger.info(f"{name:24s} = {display_value}")
        if required and not has_value:
            logger.warning(f"{name} is required")

    check_env_var("NEO4J_URI", required=True)
    check_env_var("NEO4J_USER")
    check_env_var("NEO4J_PASSWORD", required=True, sensitive=True)
    check_env_var("NEO4J_DATABASE")
    check_env_var("EMBEDDING_MODEL")
    check_env_var("OPENROUTER_API_KEY", sensitive=True)
    check_env_var("INTENT_MODEL")

    config = load_config(args.config)
    if not config.llm.is_configured:
        logger.info("Text model not configured: intent and entity fallbacks are disabled")


def main():
    load_dotenv()
    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"))
    logger = get_logger(__name__)

    parser = argparse.ArgumentParser(
        description="Hybrid retrieval over the code knowledge graph",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main_pipeline.py retrieve "How does PaymentService process a refund?"
  python main_pipeline.py retrieve "Where is OrderValidator used?" --top 20 --json
  python main_pipeline.py batch questions.txt --output outputs/results.jsonl
  python main_pipeline.py check-env
        """
    )
    parser.add_argument('--config', default=None, help='YAML file with one section per component')
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    parser_retrieve = subparsers.add_parser('retrieve', help='Retrieve nodes for one question')
    parser_retrieve.add_argument('question', help='Question in natural language')
    parser_retrieve.add_argument('--top', type=int, default=10, help='Nodes to print (default: 10)')
    parser_retrieve.add_argument('--json', action='store_true', help='Print JSON instead of a table')
    parser_retrieve.set_defaults(func=cmd_retrieve)

    parser_batch = subparsers.add_parser('batch', help='Retrieve nodes for every line of a file')
    parser_batch.add_argument('questions', help='Text file, one question per line')
    parser_batch.add_argument('--output', default=None, help='JSONL output (default: outputs/retrieval_results.jsonl)')
    parser_batch.add_argument('--top', type=int, default=10, help='Nodes kept per question (default: 10)')
    parser_batch.set_defaults(func=cmd_batch)

    parser_check = subparsers.add_parser('check-env', help='Show connection settings')
    parser_check.set_defaults(func=cmd_check_env)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        return

    args.func(args)
    logger.info("[OK] Done")


if __name__ == "__main__":
    main()
