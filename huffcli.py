# Bradford Arrington 2025
import argparse
import os
import sys
import time
import tracemalloc
from typing import List, Optional

import psutil

from bitio import BitFile
from huff import COMPRESSION_NAME, USAGE, compress_file, expand_file

_printed_header = False


def file_size(file_name: str) -> int:
    try:
        return os.stat(file_name).st_size
    except FileNotFoundError:
        return 0


def compression_ratio(input_size: int, output_size: int) -> int:
    if input_size == 0:
        input_size = 1
    return 100 - int((output_size * 100) / input_size)


def print_ratios(input_file_path: str, output_file_path: str):
    input_size = file_size(input_file_path)
    output_size = file_size(output_file_path)

    print(f"\nInput bytes:             {input_size}")
    print(f"Output bytes:            {output_size}")
    print(f"Compression ratio:       {compression_ratio(input_size, output_size)}%")


def track_performance(name, func, *args, **kwargs):
    global _printed_header

    process = psutil.Process(os.getpid())
    start_time = time.time()
    start_cpu = process.cpu_times().user
    tracemalloc.start()
    start_mem = tracemalloc.get_traced_memory()[0]

    try:
        result = func(*args, **kwargs)
        end_mem = tracemalloc.get_traced_memory()[1]
    finally:
        tracemalloc.stop()
    end_cpu = process.cpu_times().user
    end_time = time.time()

    wall_time_ms = (end_time - start_time) * 1000
    cpu_time_ms = (end_cpu - start_cpu) * 1000
    mem_used_kb = (end_mem - start_mem) / 1024

    if not _printed_header:
        print(f"{'Function':<20} {'Wall Time (ms)':>15} {'CPU Time (ms)':>15} {'Memory Used (KB)':>20}")
        _printed_header = True

    print(f"{name:<20} {wall_time_ms:15.2f} {cpu_time_ms:15.2f} {mem_used_kb:20.2f}")

    return result


def print_pacifier():
    sys.stdout.write(".")
    sys.stdout.flush()


def compress(input_name: str, output_name: str, debug: bool = False):
    with open(input_name, 'rb') as input_file:
        with BitFile.open_output_bit_file(output_name, print_pacifier) as output:
            track_performance("CompressFile", compress_file, input_file, output, debug)


def expand(input_name: str, output_name: str, debug: bool = False):
    with BitFile.open_input_bit_file(input_name, print_pacifier) as input_file:
        with open(output_name, 'wb') as output_file:
            track_performance("ExpandFile", expand_file, input_file, output_file, debug)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="huff", description=COMPRESSION_NAME, usage=f"%(prog)s {USAGE}")
    parser.add_argument("action", choices=["compress", "expand"])
    parser.add_argument("input")
    parser.add_argument("output")
    parser.add_argument("-d", "--debug", action="store_true", help="dump the modeling data")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        if args.action == "compress":
            print(f"\nCompressing {args.input} to {args.output}")
            print(f"Using {COMPRESSION_NAME}\n")
            compress(args.input, args.output, args.debug)
            print_ratios(args.input, args.output)
        else:
            print(f"\nDecompressing {args.input} to {args.output}")
            print(f"Using {COMPRESSION_NAME}\n")
            expand(args.input, args.output, args.debug)
    except FileNotFoundError as e:
        print(f"Error: File '{e.filename}' not found.")
        return 1
    except Exception as e:
        print(f"An error occurred: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
