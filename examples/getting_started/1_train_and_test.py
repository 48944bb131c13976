"""
Train both classifiers on an incident table, run the batch test and export the results.
"""

import sys
import os
import asyncio
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from classification_workbench import WorkflowController, default_classifiers

DATA_DIR = os.path.join(os.path.dirname(__file__), '..', 'data')


async def main():
    controller = WorkflowController(default_classifiers())

    with open(os.path.join(DATA_DIR, "incidents_train.csv"), "rb") as f:
        controller.upload_training_data(f.read(), source_name="incidents_train.csv")
    with open(os.path.join(DATA_DIR, "incidents_test.csv"), "rb") as f:
        controller.upload_test_data(f.read(), source_name="incidents_test.csv")

    await controller.train()
    evaluation = await controller.run_batch_test()

    print("Batch Test Results:")
    print("=" * 50)
    for result in evaluation.results:
        print(f"\n{result.id}. {result.narrative_excerpt}")
        print(f"   Actual: {result.actual_label}")
        for variant, label in result.predictions_by_variant.items():
            mark = "ok" if result.correctness_by_variant[variant] else "miss"
            print(f"   {variant}: {label} ({mark})")

    print(f"\nAccuracy: {evaluation.summary.format()}")

    output_path = os.path.join(os.path.dirname(__file__), "classification_results.csv")
    with open(output_path, "wb") as f:
        f.write(controller.export_results())
    print(f"Results written to {output_path}")

    print("\nEvent log:")
    for entry in controller.event_log:
        print(f"  [{entry.timestamp:%H:%M:%S}] {entry.kind.value:<7} {entry.message}")

    controller.close()


if __name__ == "__main__":
    asyncio.run(main())
