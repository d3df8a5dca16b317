#!/usr/bin/env python3
"""
Multi-Tenant Order Service - OrderlyID Example

A marketplace issues order and payment identifiers for several tenants,
each tenant pinned to a shard. The example walks through:

- One generator per tenant/shard pair
- Type-tagged text with and without checksums
- Decoding an identifier back into routing information
- Catching a transcription typo through the checksum
- What the two clock regression policies do when the clock steps back

Run:
    python examples/multi_tenant_example.py
"""

from orderlyid import (
    ChecksumMismatch,
    ClockRegression,
    ClockSource,
    GeneratorConfig,
    OrderlyIdGenerator,
    TestTimeProvider,
    decode,
)
from orderlyid.codec import ALPHABET


def print_section(title: str) -> None:
    """Print section header"""
    print(f"\n{'='*70}")
    print(f"  {title}")
    print(f"{'='*70}\n")


def main() -> None:
    print_section("1. One generator per tenant")

    tenants = {"acme": (101, 3), "globex": (202, 9)}
    generators = {
        name: OrderlyIdGenerator(
            GeneratorConfig(
                tenant=tenant,
                shard=shard,
                type_tag="order",
                clock_regression_policy="fail",
            )
        )
        for name, (tenant, shard) in tenants.items()
    }

    issued = []
    for name, generator in generators.items():
        for orderly_id in generator.generate_many(3):
            issued.append(orderly_id)
            print(f"  {name:<8} {orderly_id}")

    print_section("2. Routing from the identifier alone")

    for orderly_id in issued[:2]:
        decoded = decode(orderly_id.text, expected_type="order")
        fields = decoded.fields
        print(f"  {orderly_id.text}")
        print(f"    tenant={fields.tenant} shard={fields.shard} seq={fields.sequence}")
        print(f"    created {fields.occurred_at}")

    print_section("3. Checksums catch typos")

    payments = OrderlyIdGenerator(
        GeneratorConfig(
            tenant=101,
            shard=3,
            type_tag="payment",
            checksum_enabled=True,
            clock_regression_policy="fail",
        )
    )
    payment_id = payments.generate().text
    print(f"  Issued:   {payment_id}")

    # Flip one payload character to its neighbour in the alphabet
    position = len("payment_") + 10
    original = payment_id[position]
    replacement = ALPHABET[(ALPHABET.index(original) + 1) % len(ALPHABET)]
    typo = payment_id[:position] + replacement + payment_id[position + 1 :]
    print(f"  Mistyped: {typo}")
    try:
        decode(typo)
    except ChecksumMismatch as e:
        print(f"  ✓ Rejected: {e}")

    print_section("4. Clock regression policies")

    for policy in ("fail", "clamp"):
        time_provider = TestTimeProvider()
        time_provider.advance(10_000)
        generator = OrderlyIdGenerator(
            GeneratorConfig(clock_regression_policy=policy),
            ClockSource(time_provider),
        )
        first = generator.generate()
        time_provider.rewind(500)
        try:
            second = generator.generate()
            print(
                f"  {policy:<5} → issued at timestamp {second.fields.timestamp} "
                f"(previous {first.fields.timestamp}, clamped={second.clamped})"
            )
        except ClockRegression as e:
            print(f"  {policy:<5} → refused: {e}")


if __name__ == "__main__":
    main()
