from __future__ import annotations

import asyncio
import json
import sys

from pydantic import BaseModel

from streambridge import RequestDescriptor, StreamBridge, StreamError, model_decoder


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatResponse(BaseModel):
    model: str
    message: ChatMessage | None = None
    done: bool = False


async def main(prompt: str) -> None:
    body = {
        "model": "llama3",
        "messages": [{"role": "user", "content": prompt}],
        "stream": True,
    }
    descriptor = RequestDescriptor(
        method="POST",
        url="http://127.0.0.1:11434/api/chat",
        headers={"Content-Type": "application/json"},
        content=json.dumps(body).encode("utf-8"),
    )
    handle = StreamBridge().open(descriptor, model_decoder(ChatResponse))
    try:
        async for response in handle.stream:
            if response.message:
                print(response.message.content, end="", flush=True)
    except StreamError as exc:
        print(f"\nstream failed: {exc}", file=sys.stderr)
    print()


if __name__ == "__main__":
    asyncio.run(main(" ".join(sys.argv[1:]) or "Why is the sky blue?"))
