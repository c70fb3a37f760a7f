"""File templates written by normalization rules."""

from __future__ import annotations

__all__ = [
    "DEFAULT_ENV_EXAMPLE",
    "GITIGNORE_ENTRIES",
    "GITHUB_WORKFLOW_AWS",
    "GITHUB_WORKFLOW_DO",
    "NEXT_SSR_DOCKERFILE",
    "NEXT_STATIC_DOCKERFILE",
    "NGINX_CONFIG",
    "NODE_VERSION",
    "VITE_DOCKERFILE",
    "workflow_for_target",
]

NODE_VERSION = "20"

DEFAULT_ENV_EXAMPLE = "# Environment variables\n# Copy to .env and fill in values\n"

GITIGNORE_ENTRIES = (
    "node_modules/",
    ".env",
    ".env.local",
    "dist/",
    ".next/",
    "out/",
    ".mvpbridge/",
    "*.log",
)

VITE_DOCKERFILE = """\
# Build stage
FROM node:20-alpine AS builder
WORKDIR /app

COPY package*.json ./
RUN npm ci

COPY . .
RUN npm run build

# Production stage
FROM nginx:alpine
COPY --from=builder /app/dist /usr/share/nginx/html
COPY nginx.conf /etc/nginx/conf.d/default.conf
EXPOSE 80
CMD ["nginx", "-g", "daemon off;"]
"""

NGINX_CONFIG = """\
server {
    listen 80;
    server_name _;
    root /usr/share/nginx/html;
    index index.html;

    # SPA routing
    location / {
        try_files $uri $uri/ /index.html;
    }

    location ~* \\.(js|css|png|jpg|jpeg|gif|ico|svg|woff|woff2)$ {
        expires 1y;
        add_header Cache-Control "public, immutable";
    }

    add_header X-Frame-Options "SAMEORIGIN" always;
    add_header X-Content-Type-Options "nosniff" always;

    gzip on;
    gzip_types text/plain text/css application/json application/javascript text/xml application/xml;
}
"""

NEXT_STATIC_DOCKERFILE = """\
# Build stage
FROM node:20-alpine AS builder
WORKDIR /app

COPY package*.json ./
RUN npm ci

COPY . .
RUN npm run build

# Production stage
FROM nginx:alpine
COPY --from=builder /app/out /usr/share/nginx/html
EXPOSE 80
CMD ["nginx", "-g", "daemon off;"]
"""

NEXT_SSR_DOCKERFILE = """\
# Build stage
FROM node:20-alpine AS builder
WORKDIR /app

COPY package*.json ./
RUN npm ci

COPY . .
RUN npm run build

# Production stage
FROM node:20-alpine
WORKDIR /app

COPY --from=builder /app/.next/standalone ./
COPY --from=builder /app/.next/static ./.next/static
COPY --from=builder /app/public ./public

ENV NODE_ENV=production
ENV PORT=3000
EXPOSE 3000

CMD ["node", "server.js"]
"""

_WORKFLOW_HEAD = """\
name: {name}

on:
  push:
    branches: [main]

jobs:
  build-and-deploy:
    runs-on: ubuntu-latest

    steps:
      - uses: actions/checkout@v4

      - name: Setup Node.js
        uses: actions/setup-node@v4
        with:
          node-version: '20'
          cache: 'npm'

      - name: Install dependencies
        run: npm ci

      - name: Build
        run: npm run build
"""

GITHUB_WORKFLOW_DO = _WORKFLOW_HEAD.format(name="Deploy") + """
      - name: Deploy to DigitalOcean
        uses: digitalocean/app_action@v1
        with:
          app_name: ${{ vars.DO_APP_NAME }}
          token: ${{ secrets.DIGITALOCEAN_TOKEN }}
"""

GITHUB_WORKFLOW_AWS = _WORKFLOW_HEAD.format(name="Deploy to AWS Amplify") + """
      - name: Configure AWS credentials
        uses: aws-actions/configure-aws-credentials@v4
        with:
          aws-access-key-id: ${{ secrets.AWS_ACCESS_KEY_ID }}
          aws-secret-access-key: ${{ secrets.AWS_SECRET_ACCESS_KEY }}
          aws-region: ${{ vars.AWS_REGION || 'us-east-1' }}

      - name: Deploy to Amplify
        run: |
          # Amplify builds from GitHub on push; this job validates the build
          echo "Build successful - Amplify will auto-deploy"
"""


def workflow_for_target(target: str) -> str:
    return GITHUB_WORKFLOW_AWS if target == "aws" else GITHUB_WORKFLOW_DO
