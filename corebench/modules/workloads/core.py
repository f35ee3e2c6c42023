"""Workloads module — deterministic CPU-bound routines that get timed.

Every routine takes keyword parameters only and returns a small value
derived from the work so the computation cannot be skipped. Anything that
looks random comes from a seeded ``random.Random`` so the same parameters
always do the same work.

This module depends only on the standard library.
"""

from __future__ import annotations

import math
import random
from collections.abc import Callable, Mapping
from typing import Any

_MASK32 = 0xFFFFFFFF
_MASK64 = 0xFFFFFFFFFFFFFFFF


def sieve_primes(limit: int) -> int:
    """Count the primes up to ``limit`` with the sieve of Eratosthenes."""
    if limit < 2:
        return 0
    sieve = [True] * (limit + 1)
    sieve[0] = sieve[1] = False
    i = 2
    while i * i <= limit:
        if sieve[i]:
            for j in range(i * i, limit + 1, i):
                sieve[j] = False
        i += 1
    return sum(sieve)


def matrix_multiply(size: int, seed: int = 1) -> float:
    """Multiply two seeded ``size`` x ``size`` matrices; return the trace."""
    rng = random.Random(seed)
    a = [[rng.random() * 100 for _ in range(size)] for _ in range(size)]
    b = [[rng.random() * 100 for _ in range(size)] for _ in range(size)]
    trace = 0.0
    for i in range(size):
        row = a[i]
        out = [0.0] * size
        for k in range(size):
            aik = row[k]
            bk = b[k]
            for j in range(size):
                out[j] += aik * bk[j]
        trace += out[i]
    return trace


def fibonacci(n: int) -> int:
    """Iterative Fibonacci, wrapped to 64 bits to keep the work per step flat."""
    if n <= 1:
        return n
    a, b = 0, 1
    for _ in range(2, n + 1):
        a, b = b, (a + b) & _MASK64
    return b


def integer_hash(iterations: int) -> int:
    """Mix a 32-bit state ``iterations`` times with shifts and multiplies."""
    state = 0x6A09E667
    prime1 = 0x85EBCA6B
    prime2 = 0xC2B2AE35
    for i in range(iterations):
        state ^= (i * prime1) & _MASK32
        state = ((state << 13) | (state >> 19)) & _MASK32
        state = (state * prime2) & _MASK32
        state ^= state >> 16
    return state


def mandelbrot(width: int, height: int, max_iterations: int) -> int:
    """Sum escape iterations over a ``width`` x ``height`` grid."""
    x_min, x_max = -2.5, 1.0
    y_min, y_max = -1.0, 1.0
    total = 0
    for py in range(height):
        y0 = y_min + (py / height) * (y_max - y_min)
        for px in range(width):
            x0 = x_min + (px / width) * (x_max - x_min)
            x = y = 0.0
            n = 0
            while x * x + y * y <= 4.0 and n < max_iterations:
                x, y = x * x - y * y + x0, 2.0 * x * y + y0
                n += 1
            total += n
    return total


def n_queens(n: int) -> int:
    """Count the solutions of the N-Queens problem by backtracking."""
    solutions = 0
    cols: set[int] = set()
    diag: set[int] = set()
    anti: set[int] = set()

    def place(row: int) -> None:
        nonlocal solutions
        if row == n:
            solutions += 1
            return
        for col in range(n):
            if col in cols or (row - col) in diag or (row + col) in anti:
                continue
            cols.add(col)
            diag.add(row - col)
            anti.add(row + col)
            place(row + 1)
            cols.remove(col)
            diag.remove(row - col)
            anti.remove(row + col)

    place(0)
    return solutions


def naive_dft(size: int) -> float:
    """O(n^2) discrete Fourier transform of a sine wave; return summed magnitude."""
    data = [math.sin(i * 0.01) for i in range(size)]
    total = 0.0
    for k in range(size):
        real = imag = 0.0
        for n, value in enumerate(data):
            angle = (2.0 * math.pi * k * n) / size
            real += value * math.cos(angle)
            imag += value * math.sin(angle)
        total += math.sqrt(real * real + imag * imag)
    return total


def quicksort(size: int, seed: int = 7) -> list[float]:
    """Sort ``size`` seeded floats with an in-place Lomuto quicksort."""
    rng = random.Random(seed)
    arr = [rng.random() * 1_000_000 for _ in range(size)]
    stack = [(0, len(arr) - 1)]
    while stack:
        low, high = stack.pop()
        if low >= high:
            continue
        pivot = arr[high]
        i = low - 1
        for j in range(low, high):
            if arr[j] < pivot:
                i += 1
                arr[i], arr[j] = arr[j], arr[i]
        arr[i + 1], arr[high] = arr[high], arr[i + 1]
        stack.append((low, i))
        stack.append((i + 2, high))
    return arr


def floating_point(iterations: int) -> float:
    """Chain transcendental operations ``iterations`` times."""
    result = 1.0
    for i in range(1, iterations + 1):
        result *= math.sin(i) * math.cos(i) + math.tan(i * 0.001)
        result = math.sqrt(abs(result) + 1.0)
        result += math.log(abs(result) + 1.0)
        result = result**0.99
    return result


def memory_access(size: int, seed: int = 3) -> int:
    """Random read-modify-write traffic over a ``size`` element list."""
    rng = random.Random(seed)
    data = list(range(size))
    total = 0
    for _ in range(size * 2):
        index = rng.randrange(size)
        data[index] = (data[index] + data[(index + 127) % size]) % 1_000_000
        total += data[index]
    return total


def mixed(
    hash_iterations: int,
    matrix_size: int,
    float_iterations: int,
    sort_size: int,
) -> float:
    """One pass of hashing, matrix, floating point and sorting work."""
    checksum = float(integer_hash(hash_iterations))
    checksum += matrix_multiply(matrix_size)
    checksum += floating_point(float_iterations)
    checksum += quicksort(sort_size)[0]
    return checksum


ROUTINES: dict[str, Callable[..., Any]] = {
    "primes": sieve_primes,
    "matrix": matrix_multiply,
    "fibonacci": fibonacci,
    "hash": integer_hash,
    "mandelbrot": mandelbrot,
    "nqueens": n_queens,
    "fft": naive_dft,
    "sort": quicksort,
    "float": floating_point,
    "memory": memory_access,
    "mixed": mixed,
}


def run_routine(routine: str, parameters: Mapping[str, Any]) -> object:
    """Invoke the named routine once.

    Raises:
        KeyError: if ``routine`` is not in ``ROUTINES``.
    """
    fn = ROUTINES[routine]
    return fn(**parameters)
