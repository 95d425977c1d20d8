import torch.nn as nn


class FeedForwardRegressor(nn.Module):
    def __init__(self, input_dim, hidden_dims=(16, 8), output_dim=2):
        super().__init__()
        layers = []
        prev = input_dim
        for width in hidden_dims:
            layers += [nn.Linear(prev, width), nn.ReLU()]
            prev = width
        layers.append(nn.Linear(prev, output_dim))
        self.net = nn.Sequential(*layers)

    def forward(self, x):
        """
        x: (B, window_size * 2)
        returns: (B, 2) predicted (cost, revenue), scaled
        """
        return self.net(x)
