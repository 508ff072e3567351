from itertools import islice
from time import sleep, perf_counter

from group import group, group_by
from lazy import as_range


criterion_calls = 0


def expensive_criterion(x):
    # Simulate a costly projection so laziness is visible
    global criterion_calls
    criterion_calls += 1
    print(f"  computing criterion({x}) ...")
    sleep(0.05)
    return x // 10


def main():
    print("\n--- Demo: run-length grouping ---")
    for grouping in group([1, 1, 2, 2, 2, 3]):
        print("  grouping:", grouping.to_list())

    print("\n--- Demo: custom criterion (x // 3) ---")
    for grouping in group_by(lambda x: x // 3, range(6)):
        print("  grouping:", grouping.to_list())

    print("\n--- Demo: laziness (only the first grouping is located up front) ---")
    t0 = perf_counter()
    groupings = group_by(expensive_criterion, range(0, 10_000, 4))
    t1 = perf_counter()
    print(f"Constructed in {t1 - t0:.2f}s with {criterion_calls} criterion calls. Taking two groupings:")
    for grouping in islice(groupings, 2):
        print("  grouping:", grouping.to_list())
    print(f"Criterion calls so far: {criterion_calls} for 2,500 elements")

    print("\n--- Demo: backward traversal ---")
    words = ["apple", "avocado", "banana", "blueberry", "cherry"]
    for grouping in reversed(group_by(lambda w: w[0], words)):
        print("  grouping:", grouping.to_list())

    print("\n--- Demo: one-pass stream source (forward only) ---")
    stream = (n * n for n in range(1, 12))
    streamed = group_by(lambda n: len(str(n)), stream)
    print(f"Bidirectional: {streamed.bidirectional}")
    for grouping in streamed:
        print("  grouping:", grouping.to_list())

    print("\n--- Demo: run lengths through the reducers ---")
    readings = as_range([3, 3, 4, 4, 4, 9, 9, 1])
    lengths = [g.count() for g in readings.group()]
    print(f"Run lengths: {lengths}")


if __name__ == "__main__":
    main()
