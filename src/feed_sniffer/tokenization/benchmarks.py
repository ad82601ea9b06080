"""Performance benchmarking for feed format sniffing.

This module compares the shallow sniffer against a full lxml parse of the same
documents, tracking time, memory and whether each approach found the expected
format.
"""

import gc
import statistics
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import psutil
from lxml import etree

from feed_sniffer.api import FeedFormatDetector
from feed_sniffer.shared import ROOT_ELEMENT_FORMATS, FeedFormat, SnifferConfig, get_logger

SNIFFER_NAME = "feed_sniffer"
LXML_NAME = "lxml"
BYTES_PER_MB = 1024 * 1024


@dataclass
class BenchmarkResult:
    """Result of a single benchmark run."""

    parser_name: str
    test_case: str
    processing_time_ms: float
    memory_used_mb: float
    characters_processed: int
    detected_format: FeedFormat
    expected_format: FeedFormat
    success: bool = True
    error_message: Optional[str] = None

    @property
    def correct(self) -> bool:
        """Whether the detected format matches the expected one."""
        return self.success and self.detected_format is self.expected_format

    @property
    def characters_per_second(self) -> float:
        """Calculate characters processed per second."""
        if self.processing_time_ms <= 0:
            return 0.0
        return (self.characters_processed * 1000.0) / self.processing_time_ms


@dataclass
class BenchmarkSuite:
    """Collection of benchmark results with statistical analysis."""

    results: List[BenchmarkResult] = field(default_factory=list)
    suite_name: str = "Feed Sniffing Benchmark"
    timestamp: float = field(default_factory=time.time)

    def add_result(self, result: BenchmarkResult) -> None:
        """Add a benchmark result to the suite."""
        self.results.append(result)

    def get_results_by_parser(self, parser_name: str) -> List[BenchmarkResult]:
        """Get all results for a specific parser."""
        return [r for r in self.results if r.parser_name == parser_name]

    def get_results_by_test_case(self, test_case: str) -> List[BenchmarkResult]:
        """Get all results for a specific test case."""
        return [r for r in self.results if r.test_case == test_case]

    def get_statistics(self, parser_name: str, metric: str) -> Dict[str, float]:
        """Get statistical analysis for a parser and metric."""
        values = [
            getattr(result, metric)
            for result in self.get_results_by_parser(parser_name)
            if result.success
        ]
        if not values:
            return {}

        return {
            "min": min(values),
            "max": max(values),
            "mean": statistics.mean(values),
            "median": statistics.median(values),
            "stdev": statistics.stdev(values) if len(values) > 1 else 0.0,
            "count": len(values),
        }

    def accuracy(self, parser_name: str) -> float:
        """Share of test cases a parser classified correctly."""
        parser_results = self.get_results_by_parser(parser_name)
        if not parser_results:
            return 0.0
        return sum(1 for r in parser_results if r.correct) / len(parser_results)

    def generate_report(self) -> Dict[str, Any]:
        """Generate benchmark report."""
        parsers = sorted(set(r.parser_name for r in self.results))
        test_cases = sorted(set(r.test_case for r in self.results))

        report: Dict[str, Any] = {
            "suite_name": self.suite_name,
            "timestamp": self.timestamp,
            "total_results": len(self.results),
            "parsers": parsers,
            "test_cases": test_cases,
            "summary": {},
            "detailed_results": {},
        }

        for parser in parsers:
            parser_results = self.get_results_by_parser(parser)
            successful = [r for r in parser_results if r.success]
            report["summary"][parser] = {
                "total_runs": len(parser_results),
                "successful_runs": len(successful),
                "success_rate": len(successful) / len(parser_results),
                "accuracy": self.accuracy(parser),
                "time": self.get_statistics(parser, "processing_time_ms"),
                "memory": self.get_statistics(parser, "memory_used_mb"),
            }

        for test_case in test_cases:
            report["detailed_results"][test_case] = {
                result.parser_name: {
                    "processing_time_ms": result.processing_time_ms,
                    "memory_used_mb": result.memory_used_mb,
                    "detected_format": result.detected_format.value,
                    "correct": result.correct,
                    "error": result.error_message,
                }
                for result in self.get_results_by_test_case(test_case)
            }

        return report


class SnifferBenchmark:
    """Benchmark of the sniffer against a full recover-mode lxml parse."""

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        warmup_runs: int = 3,
        benchmark_runs: int = 10,
        config: Optional[SnifferConfig] = None
    ) -> None:
        """Initialize benchmark.

        Args:
            correlation_id: Optional correlation ID for tracking
            warmup_runs: Number of warmup runs before benchmarking
            benchmark_runs: Number of benchmark runs to average
            config: Sniffer configuration under test
        """
        self.correlation_id = correlation_id
        self.warmup_runs = warmup_runs
        self.benchmark_runs = benchmark_runs
        self.logger = get_logger(__name__, correlation_id, "benchmark")
        self.detector = FeedFormatDetector(config=config, correlation_id=correlation_id)
        self.test_cases = self._create_test_cases()

    def _create_test_cases(self) -> Dict[str, Tuple[str, FeedFormat]]:
        """Create (document, expected format) pairs."""
        return {
            "json_feed": (
                '{"version": "https://jsonfeed.org/version/1.1", "items": []}',
                FeedFormat.JSON,
            ),
            "small_rss": (
                '<?xml version="1.0"?><rss version="2.0"><channel>'
                "<title>Example</title></channel></rss>",
                FeedFormat.RSS,
            ),
            "small_atom": (
                '<?xml version="1.0" encoding="utf-8"?>'
                '<feed xmlns="http://www.w3.org/2005/Atom"><title>Example</title></feed>',
                FeedFormat.ATOM,
            ),
            "rdf": (
                '<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"'
                ' xmlns="http://purl.org/rss/1.0/"><channel/><item/></rdf:RDF>',
                FeedFormat.RDF,
            ),
            "rss_with_nul": (
                '<?xml version="1.0"?><rss version="2.0">\x00<channel>'
                "<title>Bad\x01bytes</title></channel></rss>",
                FeedFormat.RSS,
            ),
            "truncated_rss": (
                '<?xml version="1.0"?><rss version="2.0"><channel><item><title>Cut',
                FeedFormat.RSS,
            ),
            "large_rss": (self._generate_large_rss(), FeedFormat.RSS),
        }

    def _generate_large_rss(self, item_count: int = 2000) -> str:
        """Generate a large RSS document for throughput tests."""
        items = "".join(
            f"<item><title>Item {i}</title><link>https://example.com/{i}</link>"
            f"<description>Entry &amp; text {i}</description></item>"
            for i in range(item_count)
        )
        return (
            '<?xml version="1.0" encoding="UTF-8"?><rss version="2.0"><channel>'
            f"<title>Large</title>{items}</channel></rss>"
        )

    def _measure_memory_usage(self) -> float:
        """Get current memory usage in MB."""
        process = psutil.Process()
        return process.memory_info().rss / BYTES_PER_MB

    def _run_sniffer(self, document: str) -> FeedFormat:
        return self.detector.detect(document)

    def _run_lxml(self, document: str) -> FeedFormat:
        parser = etree.XMLParser(recover=True)
        root = etree.fromstring(
            document.encode("utf-8", errors="surrogatepass"), parser=parser
        )
        if root is None:
            return FeedFormat.UNKNOWN
        return ROOT_ELEMENT_FORMATS.get(etree.QName(root).localname, FeedFormat.UNKNOWN)

    def _benchmark(
        self,
        parser_name: str,
        test_case: str,
        document: str,
        expected: FeedFormat
    ) -> BenchmarkResult:
        runner = self._run_sniffer if parser_name == SNIFFER_NAME else self._run_lxml

        gc.collect()
        memory_before = self._measure_memory_usage()
        start_time = time.time()

        try:
            detected = runner(document)
            success = True
            error_message = None
        except (etree.LxmlError, ValueError) as e:
            detected = FeedFormat.UNKNOWN
            success = False
            error_message = str(e)

        processing_time = (time.time() - start_time) * 1000
        memory_used = max(0.0, self._measure_memory_usage() - memory_before)

        return BenchmarkResult(
            parser_name=parser_name,
            test_case=test_case,
            processing_time_ms=processing_time,
            memory_used_mb=memory_used,
            characters_processed=len(document),
            detected_format=detected,
            expected_format=expected,
            success=success,
            error_message=error_message,
        )

    def run_benchmark(self, include_lxml: bool = True) -> BenchmarkSuite:
        """Run the benchmark suite.

        Args:
            include_lxml: Whether to include the lxml baseline

        Returns:
            BenchmarkSuite with one averaged result per parser and test case
        """
        suite = BenchmarkSuite()
        parsers = [SNIFFER_NAME] + ([LXML_NAME] if include_lxml else [])

        self.logger.info(
            "Starting benchmark suite",
            extra={
                "test_cases": len(self.test_cases),
                "parsers": parsers,
                "warmup_runs": self.warmup_runs,
                "benchmark_runs": self.benchmark_runs,
            }
        )

        for test_case, (document, expected) in self.test_cases.items():
            for parser_name in parsers:
                for _ in range(self.warmup_runs):
                    self._benchmark(parser_name, test_case, document, expected)

                runs = [
                    self._benchmark(parser_name, test_case, document, expected)
                    for _ in range(self.benchmark_runs)
                ]
                if not runs:
                    continue

                last = runs[-1]
                suite.add_result(BenchmarkResult(
                    parser_name=parser_name,
                    test_case=test_case,
                    processing_time_ms=statistics.mean(r.processing_time_ms for r in runs),
                    memory_used_mb=statistics.mean(r.memory_used_mb for r in runs),
                    characters_processed=last.characters_processed,
                    detected_format=last.detected_format,
                    expected_format=expected,
                    success=all(r.success for r in runs),
                    error_message=last.error_message,
                ))

        self.logger.info(
            "Benchmark suite completed",
            extra={"total_results": len(suite.results)}
        )
        return suite
