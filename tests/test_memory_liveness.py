import gc
import threading

import numpy as np

from tensor_bridge import (
    BufferDescriptor,
    CopyMode,
    Value,
    alias,
    cpu_device,
    evaluate,
    input_variable,
    negate,
)

DIM = 1000
ITERATIONS = 300


class _Churn:
    """Background thread allocating unrelated objects to keep the collector busy."""

    def __init__(self):
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)

    def _run(self):
        objs = [None] * 100
        i = 0
        while not self._stop.is_set():
            objs[i] = [object(), bytearray(64)]
            i = (i + 1) % len(objs)

    def __enter__(self):
        self._thread.start()
        return self

    def __exit__(self, *exc):
        self._stop.set()
        self._thread.join()


def test_copied_input_survives_collection_and_churn():
    x = input_variable((DIM,))
    f = alias(x)
    device = cpu_device()

    with _Churn():
        for _ in range(ITERATIONS):
            # Zero vector that lives longer than it's used
            data = np.zeros(DIM, dtype=np.float32)
            input_value = Value.create(BufferDescriptor((DIM, 1), data), device)

            gc.collect()

            outputs = {f.output: None}
            evaluate(f, {x: input_value}, outputs, device)
            output_data = outputs[f.output].get_dense_data(f.output)

            assert np.all(data == 0.0), "Data has changed"
            assert len(output_data) == 1 and len(output_data[0]) == DIM
            assert all(v == 0.0 for v in output_data[0]), "Output doesn't equal input"


def test_caller_buffer_mutated_and_freed_after_construction():
    x = input_variable((DIM,))
    f = negate(x)
    device = cpu_device()
    rng = np.random.default_rng(0)

    with _Churn():
        for _ in range(ITERATIONS // 3):
            original = rng.standard_normal(DIM).astype(np.float32)
            data = original.copy()
            input_value = Value.create(BufferDescriptor((DIM, 1), data), device)

            # Caller reuses then drops its buffer before evaluation
            data[:] = np.nan
            del data
            gc.collect()

            outputs = {f.output: None}
            evaluate(f, {x: input_value}, outputs, device)

            np.testing.assert_array_equal(outputs[f.output].as_numpy()[0], -original)


def test_output_independent_of_later_evaluations():
    x = input_variable((4,))
    f = alias(x)
    device = cpu_device()

    first = {f.output: None}
    evaluate(f, {x: Value.from_batch(x, [[1, 2, 3, 4]], device)}, first, device)
    dense = first[f.output].get_dense_data(f.output)

    second = {f.output: None}
    evaluate(f, {x: Value.from_batch(x, [[9, 9, 9, 9]], device)}, second, device)

    assert dense == [[1.0, 2.0, 3.0, 4.0]]
    assert first[f.output].get_dense_data(f.output) == [[1.0, 2.0, 3.0, 4.0]]


def test_borrowed_input_observes_caller_writes():
    # Zero-copy binding reads the caller buffer at evaluation time
    x = input_variable((3,))
    f = alias(x)
    device = cpu_device()
    data = np.zeros(3, dtype=np.float32)
    borrowed = Value.create(BufferDescriptor((3, 1), data), device, CopyMode.BORROW)
    copied = Value.create(BufferDescriptor((3, 1), data), device)

    data[:] = 1.0

    out_b = evaluate(f, {x: borrowed}, {f.output: None}, device)[f.output]
    out_c = evaluate(f, {x: copied}, {f.output: None}, device)[f.output]
    assert out_b.get_dense_data(f.output) == [[1.0, 1.0, 1.0]]
    assert out_c.get_dense_data(f.output) == [[0.0, 0.0, 0.0]]
