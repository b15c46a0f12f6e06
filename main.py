import argparse
import logging
import secrets
import sys
from pathlib import Path
from typing import List, Optional

from anonymous_poll_system import AnonymousPollSystem, demonstrate_anonymous_poll, random_nullifier
from config.config import PollSystemConfig, load_config
from polls.host import LocalHost
from polls.models import Poll, ProofData
from utils.utils import setup_logging, save_results, create_performance_report, format_duration
from zk.exceptions import ProofDeserializationError
from zk.proof_codec import decode_proof
from zk.public_inputs import build_public_inputs
from zk.verifier import ProofVerifier

logger = logging.getLogger(__name__)


def _parse_hash(value: str) -> bytes:
    raw = bytes.fromhex(value.removeprefix("0x"))
    if len(raw) != 32:
        raise argparse.ArgumentTypeError("expected 32 bytes of hex")
    return raw


def _positive_int(value: str) -> int:
    count = int(value)
    if count < 1:
        raise argparse.ArgumentTypeError("expected a positive integer")
    return count


def expected_inputs(merkle_root: bytes, nullifier: bytes, poll_id: int,
                    option_count: int) -> List[str]:
    poll = Poll(id=poll_id, title="", description="", options=[""] * option_count,
                merkle_root=merkle_root, creator="", end_block=0)
    return build_public_inputs(poll, ProofData(proof=b"", nullifier=nullifier, vote_choice=0))


def inspect_proof(proof_file: Path, config: PollSystemConfig,
                  merkle_root: Optional[bytes] = None, nullifier: Optional[bytes] = None,
                  poll_id: Optional[int] = None, option_count: Optional[int] = None) -> bool:
    """Decode a proof blob and report its contents; True when it is well formed"""
    try:
        decoded = decode_proof(proof_file.read_bytes())
    except ProofDeserializationError as e:
        print(f"Malformed proof: {e}")
        return False

    print(f"Proof bytes: {len(decoded.proof_bytes)}")
    print(f"Public inputs ({len(decoded.public_inputs)}):")
    for i, value in enumerate(decoded.public_inputs):
        print(f"  [{i}] {value}")

    verifier = ProofVerifier.from_config(config.verifier)
    structural_ok = verifier.validate_structure(decoded)
    print(f"Structural checks: {'PASSED' if structural_ok else 'FAILED'}")

    if None not in (merkle_root, nullifier, poll_id, option_count):
        expected = expected_inputs(merkle_root, nullifier, poll_id, option_count)
        matches = ProofVerifier.public_inputs_match(decoded.public_inputs, expected)
        print(f"Public inputs match poll: {'YES' if matches else 'NO'}")
        if not matches:
            for i, want in enumerate(expected):
                got = decoded.public_inputs[i] if i < len(decoded.public_inputs) else "<missing>"
                marker = " " if got == want else "!"
                print(f" {marker}[{i}] expected {want}, got {got}")
        return structural_ok and matches

    return structural_ok


def run_benchmark(config: PollSystemConfig, num_votes: int, num_options: int) -> bool:
    host = LocalHost(caller="benchmark")
    system = AnonymousPollSystem(config=config, host=host)
    if not system.has_verification_key():
        system.set_verification_key(secrets.token_bytes(32))

    options = [f"option_{i}" for i in range(num_options)]
    poll_id = system.create_poll("Benchmark", "", options, secrets.token_bytes(32),
                                 duration=num_votes + 1)

    print(f"Casting {num_votes} votes across {num_options} options...")
    submissions = [
        system.assemble_proof(poll_id, random_nullifier(), i % num_options)
        for i in range(num_votes)
    ]
    for proof_data in submissions:
        system.vote(poll_id, proof_data)

    results = system.get_results(poll_id)
    poll = system.get_poll(poll_id)
    consistent = sum(results) == poll.total_votes == num_votes

    summary = system.performance_monitor.get_summary()
    vote_stats = summary['operations'].get('vote', {})
    print(f"Results: {results}")
    print(f"Tally consistent: {consistent}")
    if vote_stats:
        print(f"Average vote: {format_duration(vote_stats['avg_duration'])}")
        print(f"Throughput: {vote_stats['throughput_ops_per_sec']:.1f} votes/second")

    config.results_dir.mkdir(parents=True, exist_ok=True)
    save_results(system.export_results([poll_id]), config.results_dir / "benchmark_results.json")
    report_path = config.results_dir / "performance_report.txt"
    report_path.write_text(create_performance_report(system.performance_monitor))
    print(f"Performance report: {report_path}")

    return consistent


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description='Anonymous Eligibility-Gated Polling')
    parser.add_argument('--config', type=str,
                        default='config.yaml', help='Config file path')
    parser.add_argument(
        '--mode', choices=['demo', 'inspect', 'benchmark'], default='demo')
    parser.add_argument('--proof-file', type=Path,
                        help='Proof blob to decode (inspect mode)')
    parser.add_argument('--merkle-root', type=_parse_hash,
                        help='Poll merkle root as hex (inspect mode)')
    parser.add_argument('--nullifier', type=_parse_hash,
                        help='Vote nullifier as hex (inspect mode)')
    parser.add_argument('--poll-id', type=int, help='Poll id (inspect mode)')
    parser.add_argument('--option-count', type=_positive_int,
                        help='Number of poll options (inspect mode)')
    parser.add_argument('--votes', type=int, default=1000,
                        help='Number of votes (benchmark mode)')
    parser.add_argument('--options', type=int, default=3,
                        help='Number of options (benchmark mode)')

    args = parser.parse_args(argv)

    config = load_config(Path(args.config))
    setup_logging(config.log_level, config.log_dir / "poll_system.log")

    if args.mode == 'demo':
        results = demonstrate_anonymous_poll(config)
        save_results(results, config.results_dir / "demo_results.json")
        sys.exit(0)
    elif args.mode == 'inspect':
        if args.proof_file is None:
            parser.error("--proof-file is required in inspect mode")
        ok = inspect_proof(args.proof_file, config, args.merkle_root, args.nullifier,
                           args.poll_id, args.option_count)
        sys.exit(0 if ok else 1)
    elif args.mode == 'benchmark':
        ok = run_benchmark(config, args.votes, args.options)
        sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
