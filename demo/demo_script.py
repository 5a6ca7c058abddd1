import asyncio
import random

import httpx

API = "http://localhost:3001/api"


async def show_state(client: httpx.AsyncClient) -> None:
    wallet = (await client.get("/wallet")).json()["wallet"]
    price = (await client.get("/price")).json()
    orders = (await client.get("/orders")).json()["orders"]
    pending = sum(1 for o in orders if o["status"] == "pending")
    print(f"[{price['source']}] price={price['price']} fiat={wallet['fiat']} asset={wallet['asset']} pending={pending}")


async def main():
    async with httpx.AsyncClient(base_url=API) as client:
        r = await client.post("/enable-mock")
        base = float(r.json()["current_price"])
        print(f"mock mode on at {base}")

        # Ladder of limit orders around the starting price
        for i in range(1, 6):
            await client.post("/orders/buy", json={"amount": "0.5", "price": str(round(base - i * 2, 2))})
            await client.post("/orders/sell", json={"amount": "0.5", "price": str(round(base + i * 2, 2))})

        while True:
            await show_state(client)
            if random.random() < 0.2:
                side = random.choice(["buy", "sell"])
                px = base + random.uniform(-15, 15)
                r = await client.post(f"/orders/{side}", json={"amount": "0.1", "price": f"{px:.2f}"})
                print(f"  {side} 0.1 @ {px:.2f} -> {r.status_code}")
            await asyncio.sleep(3)


if __name__ == "__main__":
    asyncio.run(main())
