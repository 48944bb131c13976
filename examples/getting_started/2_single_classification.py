"""
Classify ad-hoc narratives with every trained variant, optionally adding a Bedrock LLM.

Set ENABLE_LLM=1 (with AWS credentials configured) to include the few-shot LLM classifier.
"""

import sys
import os
import asyncio
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from classification_workbench import WorkflowController, default_classifiers
from classification_workbench.llm_classifier import BedrockLLMClassifier

DATA_PATH = os.path.join(os.path.dirname(__file__), '..', 'data', 'incidents_train.csv')

test_texts = [
    "Someone took my phone off the table while I was paying",
    "The suspect kicked the victim several times before running away",
    "Paint was thrown all over the front door of the shop"
]


async def main():
    classifiers = default_classifiers()
    if os.getenv("ENABLE_LLM", "").lower() in ("1", "true", "yes"):
        classifiers.append(BedrockLLMClassifier())

    controller = WorkflowController(classifiers)
    with open(DATA_PATH, "rb") as f:
        controller.upload_training_data(f.read(), source_name="incidents_train.csv")
    await controller.train()

    print("Single Text Classification:")
    print("=" * 50)
    for i, text in enumerate(test_texts, 1):
        outcome = await controller.classify_text(text)
        print(f"\n{i}. Text: {text[:60]}...")
        for prediction in outcome.predictions:
            print(f"   {prediction.model_variant}: {prediction.predicted_label} "
                  f"(confidence {prediction.confidence:.3f})")

    controller.close()


if __name__ == "__main__":
    asyncio.run(main())
