"""Example agents: a greeting agent and an echo agent."""