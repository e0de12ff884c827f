from copperbuild.main import main

main()
